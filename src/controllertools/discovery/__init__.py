"""Discovery of the kinds served by the API server."""

__all__ = (
    "ApiResource",
    "DiscoveryCache",
    "DiscoveryManager",
    "KubernetesResourceLister",
    "ResourceLister",
)

from controllertools.discovery.cache import DiscoveryCache
from controllertools.discovery.manager import (
    ApiResource,
    DiscoveryManager,
    KubernetesResourceLister,
    ResourceLister,
)
