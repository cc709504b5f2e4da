"""The object store client contract used by the reconciler."""

from __future__ import annotations

__all__ = ("ObjectClient", "OperationResult", "key_of")

import copy
import enum
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from controllertools.equality import SemanticEquality
from controllertools.errors import ObjectNotFoundError
from controllertools.schema import GroupVersionKind, ObjectKey, object_key


class OperationResult(enum.Enum):
    """The outcome of a write to the object store."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"


def key_of(obj: Mapping[str, Any]) -> ObjectKey:
    """Get the identity of a manifest from its own ``apiVersion``/``kind``."""
    gvk = GroupVersionKind.from_api_version(
        obj.get("apiVersion", ""), obj.get("kind", "")
    )
    return object_key(obj, gvk)


class ObjectClient(ABC):
    """Reads and writes objects in the cluster.

    Every failing call raises `controllertools.errors.StoreOperationError`
    carrying the operation and the object's identity; `get` raises
    `controllertools.errors.ObjectNotFoundError` for missing objects.
    """

    @abstractmethod
    def get(self, key: ObjectKey) -> dict[str, Any]:
        """Read the current state of an object."""

    @abstractmethod
    def create(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Create an object and return it as stored."""

    @abstractmethod
    def update(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Replace an object and return it as stored."""

    @abstractmethod
    def delete(self, obj: Mapping[str, Any]) -> None:
        """Delete an object."""

    @abstractmethod
    def patch(
        self,
        obj: Mapping[str, Any],
        patch: Mapping[str, Any],
        subresource: str | None = None,
    ) -> dict[str, Any]:
        """Apply a JSON merge patch to an object or one of its subresources.
        """

    def create_or_update(
        self,
        obj: dict[str, Any],
        mutate: Callable[[dict[str, Any]], None],
        equality: SemanticEquality | None = None,
    ) -> tuple[dict[str, Any], OperationResult]:
        """Create the object, or update it if it already exists.

        ``mutate`` is applied to the new object before creating it, or to
        the current object before comparing it with its previous state. The
        update call is only made if the mutation changed the object.

        Parameters
        ----------
        obj : `dict`
            The object to reconcile; only its identity is used to look up
            the current state.
        mutate : callable
            Mutates an object in place to match the desired state. It must
            not change the object's name or namespace.
        equality : `controllertools.equality.SemanticEquality`, optional
            The comparator deciding whether the mutation changed the object.

        Returns
        -------
        obj : `dict`
            The resulting object.
        result : `OperationResult`
            ``CREATED``, ``UPDATED`` or ``UNCHANGED``.
        """
        if equality is None:
            equality = SemanticEquality()
        key = key_of(obj)

        try:
            current = self.get(key)
        except ObjectNotFoundError:
            mutate(obj)
            _check_identity(key, obj)
            return self.create(obj), OperationResult.CREATED

        before = copy.deepcopy(current)
        mutate(current)
        _check_identity(key, current)
        if equality.deep_equal(before, current, key.gvk):
            return current, OperationResult.UNCHANGED
        return self.update(current), OperationResult.UPDATED


def _check_identity(key: ObjectKey, obj: Mapping[str, Any]) -> None:
    if key_of(obj) != key:
        raise ValueError(
            "mutate function cannot change the object's name or namespace"
        )
