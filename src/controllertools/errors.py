"""Exceptions raised by controller-tools.

Transient failures subclass `kopf.TemporaryError` so that a kopf handler
raising them is retried. Configuration bugs subclass `kopf.PermanentError`.
"""

from __future__ import annotations

__all__ = (
    "ControllerToolsError",
    "DiscoveryQueryError",
    "ObjectNotFoundError",
    "StatusConversionError",
    "StoreOperationError",
    "TypeResolutionError",
)

from typing import TYPE_CHECKING

import kopf

if TYPE_CHECKING:
    from controllertools.schema import GroupVersionKind, ObjectKey


class ControllerToolsError(Exception):
    """Base class for controller-tools errors."""


class DiscoveryQueryError(ControllerToolsError, kopf.TemporaryError):
    """The API discovery listing failed (network, authorization).

    Failed queries are never cached; the next call queries again.
    """

    def __init__(self, gvk: GroupVersionKind, message: str) -> None:
        super().__init__(
            f"can't determine if {gvk} is supported: {message}", delay=10
        )
        self.gvk = gvk


class TypeResolutionError(ControllerToolsError, kopf.PermanentError):
    """An object's kind or identity cannot be resolved against the scheme."""


class StatusConversionError(ControllerToolsError, kopf.PermanentError):
    """An object cannot be normalized to compute its readiness status."""


class StoreOperationError(ControllerToolsError, kopf.TemporaryError):
    """A get, create, update, delete or patch call failed.

    Attributes
    ----------
    operation : `str`
        The verb that failed, such as ``create``.
    key : `controllertools.schema.ObjectKey`
        The identity of the object the operation targeted.
    status : `int` or `None`
        The HTTP status code of the API response, when known.
    """

    def __init__(
        self,
        operation: str,
        key: ObjectKey,
        message: str,
        *,
        status: int | None = None,
    ) -> None:
        super().__init__(f"can't {operation} {key}: {message}")
        self.operation = operation
        self.key = key
        self.status = status


class ObjectNotFoundError(StoreOperationError):
    """The object does not exist in the store."""

    def __init__(self, key: ObjectKey, message: str = "not found") -> None:
        super().__init__("get", key, message, status=404)
