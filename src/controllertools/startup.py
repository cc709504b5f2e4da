"""Code intended to run on start-up, before running any handlers."""

__all__ = ("warm_discovery_cache",)

from collections.abc import Iterable
from typing import Any

import structlog

from controllertools.discovery import DiscoveryManager
from controllertools.errors import DiscoveryQueryError
from controllertools.schema import GroupVersionKind


def warm_discovery_cache(
    manager: DiscoveryManager,
    gvks: Iterable[GroupVersionKind],
    logger: Any | None = None,
) -> dict[GroupVersionKind, bool]:
    """Prime the discovery cache with the kinds an operator manages.

    Kinds whose discovery query fails are logged and left unresolved, to be
    queried again on first use.

    Returns
    -------
    supported : `dict`
        Whether each successfully resolved kind is supported.
    """
    if logger is None:
        logger = structlog.getLogger(__name__)

    supported = {}
    for gvk in gvks:
        try:
            supported[gvk] = manager.is_gvk_supported(gvk)
        except DiscoveryQueryError:
            logger.exception(f"Discovery of {gvk} failed during start-up")
            continue

    unsupported = [str(gvk) for gvk, value in supported.items() if not value]
    if unsupported:
        logger.info(
            f"Kinds not served by the API server: {', '.join(unsupported)}"
        )
    return supported
