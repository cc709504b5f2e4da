"""Resolution of whether kinds are served by the cluster's API."""

from __future__ import annotations

__all__ = (
    "ApiResource",
    "DiscoveryManager",
    "KubernetesResourceLister",
    "ResourceLister",
    "guess_plural",
)

from collections.abc import Mapping
from typing import Any, NamedTuple, Protocol

import structlog
from kubernetes.client.exceptions import ApiException

from controllertools import config
from controllertools.discovery.cache import DiscoveryCache
from controllertools.errors import DiscoveryQueryError
from controllertools.schema import GroupVersionKind, Scheme


class ApiResource(NamedTuple):
    """One entry of an API group/version resource listing."""

    name: str
    """The plural resource name, such as ``deployments`` or
    ``deployments/status`` for a subresource.
    """

    kind: str
    """The kind served by the resource, such as ``Deployment``."""


class ResourceLister(Protocol):
    """Lists the resources served for an API group and version."""

    def list_resources(self, group: str, version: str) -> list[ApiResource]:
        """List the resources of a group/version.

        A group/version that the server does not serve yields an empty list.
        Any other failure is raised.
        """
        ...


class KubernetesResourceLister:
    """`ResourceLister` backed by the Kubernetes discovery endpoints.

    Parameters
    ----------
    k8s_client
        A Kubernetes client (see `controllertools.k8s.create_k8sclient`).
    timeout_seconds : `int`, optional
        Request timeout. Defaults to
        `controllertools.config.discovery_timeout`.
    """

    def __init__(
        self, k8s_client: Any, timeout_seconds: int | None = None
    ) -> None:
        self._k8s_client = k8s_client
        if timeout_seconds is None:
            timeout_seconds = config.discovery_timeout
        self._timeout_seconds = timeout_seconds

    def list_resources(self, group: str, version: str) -> list[ApiResource]:
        try:
            if group:
                api = self._k8s_client.CustomObjectsApi()
                result = api.get_api_resources(
                    group, version, _request_timeout=self._timeout_seconds
                )
            elif version == "v1":
                api = self._k8s_client.CoreV1Api()
                result = api.get_api_resources(
                    _request_timeout=self._timeout_seconds
                )
            else:
                # The core group only serves v1.
                return []
        except ApiException as e:
            if e.status == 404:
                return []
            raise

        if result is None or not result.resources:
            return []
        return [
            ApiResource(name=resource.name, kind=resource.kind)
            for resource in result.resources
        ]


def guess_plural(kind: str) -> str:
    """Guess the plural resource name of a kind, such as ``pods`` for
    ``Pod``.

    Used to match listing entries that carry no kind.
    """
    name = kind.lower()
    if name.endswith("s"):
        return f"{name}es"
    if name.endswith("y") and name[-2:-1] not in ("a", "e", "i", "o", "u"):
        return f"{name[:-1]}ies"
    return f"{name}s"


class DiscoveryManager:
    """Decides whether kinds and objects are supported by the API server.

    Results are memoized in a `DiscoveryCache`, including negative results,
    so each kind is queried at most once while queries succeed.

    Parameters
    ----------
    lister : `ResourceLister`
        The discovery listing client.
    scheme : `controllertools.schema.Scheme`
        The scheme used to resolve the kind of objects.
    cache : `DiscoveryCache`, optional
        The cache to use. A new, empty cache is created by default.
    logger : optional
        Logger to use. Defaults to a structlog logger.
    """

    def __init__(
        self,
        lister: ResourceLister,
        scheme: Scheme,
        cache: DiscoveryCache | None = None,
        logger: Any | None = None,
    ) -> None:
        self.lister = lister
        self.scheme = scheme
        self.cache = cache if cache is not None else DiscoveryCache()
        if logger is None:
            logger = structlog.getLogger(__name__)
        self.logger = logger

    def is_gvk_supported(self, gvk: GroupVersionKind) -> bool:
        """Check whether the API server serves a kind.

        Raises
        ------
        controllertools.errors.DiscoveryQueryError
            Raised if the discovery listing fails. The failure is not cached.
        """
        supported, found = self.cache.get(gvk)
        if found:
            return supported

        try:
            resources = self.lister.list_resources(gvk.group, gvk.version)
        except Exception as e:
            raise DiscoveryQueryError(gvk, str(e)) from e

        plural = guess_plural(gvk.kind)
        supported = any(
            "/" not in resource.name
            and (
                resource.kind == gvk.kind
                or (not resource.kind and resource.name == plural)
            )
            for resource in resources
        )
        self.cache.set(gvk, supported)
        self.logger.debug(f"Discovered {gvk} supported={supported}")
        return supported

    def are_objects_supported(self, *objects: Mapping[str, Any]) -> bool:
        """Check whether the API server serves the kinds of all objects.

        Raises
        ------
        controllertools.errors.TypeResolutionError
            Raised if an object's kind is not known to the scheme.
        controllertools.errors.DiscoveryQueryError
            Raised if a discovery listing fails.
        """
        for obj in objects:
            gvk = self.scheme.resolve_kind(obj)
            if not self.is_gvk_supported(gvk):
                return False
        return True
