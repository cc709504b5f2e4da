"""Semantic equality of manifests."""

from __future__ import annotations

__all__ = ("EqualFunc", "SemanticEquality")

from collections.abc import Callable, Mapping
from typing import Any

from controllertools.schema import GroupVersionKind

EqualFunc = Callable[[Any, Any], bool]
"""A custom equality function for objects of one kind."""


def _normalize(value: Any) -> Any:
    # Missing keys, None and empty collections all normalize to None.
    if isinstance(value, Mapping):
        normalized = {}
        for key, item in value.items():
            item = _normalize(item)
            if item is not None:
                normalized[key] = item
        return normalized or None
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value] or None
    return value


class SemanticEquality:
    """Comparator deciding whether two objects are equivalent.

    Objects of a kind with a registered function are compared with that
    function. Other objects are compared structurally, treating a missing
    key, `None`, an empty list and an empty mapping as equal.

    Registrations are held by the instance; use `copy` to scope them to one
    reconciliation pass.
    """

    def __init__(
        self, funcs: Mapping[GroupVersionKind, EqualFunc] | None = None
    ) -> None:
        self._funcs: dict[GroupVersionKind, EqualFunc] = dict(funcs or {})

    def add_func(self, gvk: GroupVersionKind, func: EqualFunc) -> None:
        """Register the equality function for a kind, replacing any other."""
        if not callable(func):
            raise TypeError(f"equality function for {gvk} is not callable")
        self._funcs[gvk] = func

    def copy(self) -> SemanticEquality:
        return SemanticEquality(self._funcs)

    def deep_equal(
        self, a: Any, b: Any, gvk: GroupVersionKind | None = None
    ) -> bool:
        if gvk is not None and gvk in self._funcs:
            return bool(self._funcs[gvk](a, b))
        return _normalize(a) == _normalize(b)
