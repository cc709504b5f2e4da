"""In-memory cache of discovery results."""

__all__ = ("DiscoveryCache",)

import threading

from controllertools.schema import GroupVersionKind


class DiscoveryCache:
    """Thread-safe mapping of a kind to whether the API server serves it.

    Entries are never evicted: the API surface is assumed stable for the
    lifetime of the process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._supported: dict[GroupVersionKind, bool] = {}

    def get(self, gvk: GroupVersionKind) -> tuple[bool, bool]:
        """Get the cached support flag of a kind.

        Returns
        -------
        value : `bool`
            Whether the kind is supported. Always `False` when ``found`` is
            `False`.
        found : `bool`
            Whether the kind has been resolved before. `False` means
            unknown, not unsupported.
        """
        with self._lock:
            if gvk in self._supported:
                return self._supported[gvk], True
        return False, False

    def set(self, gvk: GroupVersionKind, value: bool) -> None:
        with self._lock:
            self._supported[gvk] = value

    def __contains__(self, gvk: object) -> bool:
        with self._lock:
            return gvk in self._supported

    def __len__(self) -> int:
        with self._lock:
            return len(self._supported)
