"""A builder for a fixed desired manifest."""

from __future__ import annotations

__all__ = ("ManifestBuilder", "merge_into")

import copy
from collections.abc import Mapping
from typing import Any, cast

import kopf

from controllertools.resource.builder import Builder


def merge_into(target: dict[str, Any], desired: Mapping[str, Any]) -> None:
    """Merge the desired fields into ``target`` in place.

    Mappings are merged key by key and scalars replace the target's value.
    Lists take the desired items, but each mapping item is merged into the
    matching current item (by ``name``, otherwise by position) so that
    fields the API server defaulted inside list items are kept. Keys that
    ``desired`` does not declare are left untouched.
    """
    for key, value in desired.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merge_into(current, value)
        elif isinstance(value, list) and isinstance(current, list):
            target[key] = _merge_lists(current, value)
        else:
            target[key] = copy.deepcopy(value)


def _merge_lists(current: list[Any], desired: list[Any]) -> list[Any]:
    named = {
        item["name"]: item
        for item in current
        if isinstance(item, dict) and "name" in item
    }
    merged = []
    for index, value in enumerate(desired):
        if not isinstance(value, Mapping):
            merged.append(copy.deepcopy(value))
            continue
        existing: Any = None
        if "name" in value:
            existing = named.get(value["name"])
        elif index < len(current) and isinstance(current[index], dict):
            existing = current[index]
        item = copy.deepcopy(existing) if existing is not None else {}
        merge_into(item, value)
        merged.append(item)
    return merged


class ManifestBuilder(Builder):
    """Builder that converges a resource to a desired manifest.

    Parameters
    ----------
    desired : `dict`
        The desired manifest, with at least ``apiVersion``, ``kind`` and
        ``metadata.name``. Only the fields it declares are managed.
    enabled : `bool`
        Whether the resource should exist. A disabled builder causes the
        resource to be deleted.
    owner : `dict`, optional
        The owning object, such as the body of a custom resource in a kopf
        handler. When set, managed objects are adopted by the owner (owner
        reference, namespace and labels, see `kopf.adopt`).
    """

    def __init__(
        self,
        desired: Mapping[str, Any],
        *,
        enabled: bool = True,
        owner: Mapping[str, Any] | None = None,
    ) -> None:
        self.desired = copy.deepcopy(dict(desired))
        self.owner = owner
        self._enabled = enabled

        metadata = self.desired.setdefault("metadata", {})
        if not metadata.get("namespace") and owner is not None:
            owner_namespace = owner.get("metadata", {}).get("namespace")
            if owner_namespace:
                metadata["namespace"] = owner_namespace

    def build(self) -> dict[str, Any]:
        metadata = self.desired["metadata"]
        identity: dict[str, Any] = {"name": metadata.get("name")}
        if metadata.get("namespace"):
            identity["namespace"] = metadata["namespace"]
        return {
            "apiVersion": self.desired.get("apiVersion"),
            "kind": self.desired.get("kind"),
            "metadata": identity,
        }

    def enabled(self) -> bool:
        return self._enabled

    def update(self, obj: dict[str, Any]) -> None:
        merge_into(obj, self.desired)
        if self.owner is not None:
            kopf.adopt(obj, owner=cast("kopf.Body", self.owner))

    def __repr__(self) -> str:
        metadata = self.desired["metadata"]
        return (
            f"ManifestBuilder({self.desired.get('kind')} "
            f"{metadata.get('namespace')}/{metadata.get('name')})"
        )
