"""Normalized readiness status of managed resources."""

from __future__ import annotations

__all__ = ("Status", "compute_status", "to_unstructured")

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from controllertools import kstatus
from controllertools.errors import StatusConversionError
from controllertools.schema import GroupVersionKind


@dataclass(frozen=True)
class Status:
    """The readiness of one managed resource."""

    gvk: GroupVersionKind
    name: str
    namespace: str | None
    labels: dict[str, str] = field(default_factory=dict, hash=False)
    ready: bool = False

    @property
    def kind(self) -> str:
        return self.gvk.kind


def to_unstructured(obj: Any) -> dict[str, Any]:
    """Convert an object into a plain JSON-compatible `dict`.

    Raises
    ------
    controllertools.errors.StatusConversionError
        Raised if the object is not a mapping or holds values that have no
        JSON representation.
    """
    if not isinstance(obj, Mapping):
        raise StatusConversionError(
            f"can't convert a {type(obj).__name__} to an unstructured object"
        )
    try:
        return json.loads(json.dumps(obj))
    except (TypeError, ValueError) as e:
        raise StatusConversionError(
            f"can't convert object to an unstructured object: {e}"
        ) from e


def compute_status(
    obj: Mapping[str, Any], gvk: GroupVersionKind | None = None
) -> Status:
    """Compute the readiness status of an object.

    Parameters
    ----------
    obj : `dict`
        The object, typically as returned by the API server.
    gvk : `controllertools.schema.GroupVersionKind`, optional
        The kind of the object. Read from ``apiVersion`` and ``kind`` if not
        given.

    Returns
    -------
    status : `Status`
        The status. ``ready`` is `True` only when the object's aggregate
        state is ``Current``.

    Raises
    ------
    controllertools.errors.StatusConversionError
        Raised if the object cannot be converted or its state inferred.
    """
    unstructured = to_unstructured(obj)
    try:
        computed = kstatus.compute(unstructured)
    except ValueError as e:
        raise StatusConversionError(f"can't compute status: {e}") from e

    if gvk is None:
        gvk = GroupVersionKind.from_api_version(
            unstructured.get("apiVersion", ""), unstructured.get("kind", "")
        )
    metadata = unstructured.get("metadata") or {}
    return Status(
        gvk=gvk,
        name=metadata.get("name", ""),
        namespace=metadata.get("namespace"),
        labels=dict(metadata.get("labels") or {}),
        ready=computed.status is kstatus.AggregateStatus.CURRENT,
    )
