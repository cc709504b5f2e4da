"""Patching objects against a snapshot of their earlier state."""

from __future__ import annotations

__all__ = ("PatchHelper", "create_merge_patch", "patch_on_exit")

import copy
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from controllertools.store import ObjectClient


def create_merge_patch(
    before: Mapping[str, Any], after: Mapping[str, Any]
) -> dict[str, Any]:
    """Create the JSON merge patch (RFC 7386) turning ``before`` into
    ``after``.

    Removed keys are set to `None`; lists are replaced as a whole.
    """
    patch: dict[str, Any] = {}
    for key in before:
        if key not in after:
            patch[key] = None
    for key, value in after.items():
        if key not in before:
            patch[key] = copy.deepcopy(value)
            continue
        previous = before[key]
        if isinstance(previous, Mapping) and isinstance(value, Mapping):
            nested = create_merge_patch(previous, value)
            if nested:
                patch[key] = nested
        elif previous != value:
            patch[key] = copy.deepcopy(value)
    return patch


def _split_status(
    obj: Mapping[str, Any],
) -> tuple[dict[str, Any], dict[str, Any]]:
    content = {key: value for key, value in obj.items() if key != "status"}
    return content, dict(obj.get("status") or {})


class PatchHelper:
    """Sends the changes made to an object since a snapshot.

    The object's content and its ``status`` are patched separately, the
    latter through the ``status`` subresource.

    Parameters
    ----------
    obj : `dict`
        The object, as read from the API server. It is snapshotted now.
    client : `controllertools.store.ObjectClient`
        The client used to send the patches.
    """

    def __init__(self, obj: Mapping[str, Any], client: ObjectClient) -> None:
        self.before = copy.deepcopy(dict(obj))
        self.client = client

    def patch(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Patch the object with the changes made since the snapshot.

        Returns
        -------
        obj : `dict`
            The object as returned by the last patch, or ``obj`` itself if
            there were no changes.
        """
        before_content, before_status = _split_status(self.before)
        after_content, after_status = _split_status(obj)

        result = obj
        content_patch = create_merge_patch(before_content, after_content)
        if content_patch:
            result = self.client.patch(obj, content_patch)
        status_patch = create_merge_patch(before_status, after_status)
        if status_patch:
            result = self.client.patch(
                obj, {"status": status_patch}, subresource="status"
            )

        self.before = copy.deepcopy(obj)
        return result


@contextmanager
def patch_on_exit(
    obj: dict[str, Any], client: ObjectClient
) -> Iterator[dict[str, Any]]:
    """Snapshot an object and patch its changes when the block exits.

    The patch is also sent when the block raises.
    """
    helper = PatchHelper(obj, client)
    try:
        yield obj
    finally:
        helper.patch(obj)
