"""Kind triples, object identities and the registry of known kinds."""

from __future__ import annotations

__all__ = (
    "GroupVersionKind",
    "ObjectKey",
    "Scheme",
    "default_scheme",
    "object_key",
)

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from controllertools.errors import TypeResolutionError

ObjectFactory = Callable[[], dict[str, Any]]
"""A callable producing a zero-value manifest of one kind."""


@dataclass(frozen=True)
class GroupVersionKind:
    """The (API group, version, kind) triple identifying a resource type.

    The core API group is the empty string.
    """

    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        """The ``apiVersion`` string of manifests of this kind."""
        if self.group:
            return f"{self.group}/{self.version}"
        return self.version

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> GroupVersionKind:
        """Parse an ``apiVersion`` string such as ``apps/v1`` or ``v1``."""
        group, _, version = api_version.rpartition("/")
        return cls(group=group, version=version, kind=kind)

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


@dataclass(frozen=True)
class ObjectKey:
    """The identity of one object: its kind, namespace and name.

    ``namespace`` is `None` for cluster-scoped objects.
    """

    gvk: GroupVersionKind
    namespace: str | None
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.gvk.kind} {self.namespace}/{self.name}"
        return f"{self.gvk.kind} {self.name}"


def object_key(obj: Mapping[str, Any], gvk: GroupVersionKind) -> ObjectKey:
    """Get the identity of a manifest.

    Parameters
    ----------
    obj : `dict`
        The manifest.
    gvk : `GroupVersionKind`
        The kind of the manifest, as resolved by `Scheme.resolve_kind`.

    Returns
    -------
    key : `ObjectKey`
        The identity of the object.

    Raises
    ------
    controllertools.errors.TypeResolutionError
        Raised if the manifest has no ``metadata.name``.
    """
    metadata = obj.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise TypeResolutionError(
            f"object of kind {gvk} has no metadata.name"
        )
    return ObjectKey(gvk=gvk, namespace=metadata.get("namespace"), name=name)


def _zero_value_factory(gvk: GroupVersionKind) -> ObjectFactory:
    def factory() -> dict[str, Any]:
        return {"apiVersion": gvk.api_version, "kind": gvk.kind, "metadata": {}}

    return factory


class Scheme:
    """Registry of the kinds an operator knows how to manage.

    Each known kind maps to a factory that produces a zero-value manifest of
    that kind.
    """

    def __init__(self) -> None:
        self._types: dict[GroupVersionKind, ObjectFactory] = {}

    def add_known_type(
        self, gvk: GroupVersionKind, factory: ObjectFactory | None = None
    ) -> None:
        """Register a kind, with an optional custom zero-value factory."""
        self._types[gvk] = factory or _zero_value_factory(gvk)

    def add_known_types(
        self, group: str, version: str, *kinds: str
    ) -> None:
        """Register several kinds of one group and version."""
        for kind in kinds:
            self.add_known_type(GroupVersionKind(group, version, kind))

    def recognizes(self, gvk: GroupVersionKind) -> bool:
        return gvk in self._types

    def lookup_type(self, gvk: GroupVersionKind) -> ObjectFactory | None:
        """Get the zero-value factory of a kind, or `None` if unknown."""
        return self._types.get(gvk)

    def new_object(self, gvk: GroupVersionKind) -> dict[str, Any]:
        """Create a zero-value manifest of a known kind."""
        factory = self.lookup_type(gvk)
        if factory is None:
            raise TypeResolutionError(f"can't get type for {gvk}")
        return factory()

    def resolve_kind(self, obj: Mapping[str, Any]) -> GroupVersionKind:
        """Resolve the kind triple of a manifest.

        Raises
        ------
        controllertools.errors.TypeResolutionError
            Raised if the manifest has no ``apiVersion`` or ``kind``, or if
            the kind is not registered with this scheme.
        """
        if not isinstance(obj, Mapping):
            raise TypeResolutionError(
                f"can't resolve the kind of a {type(obj).__name__}"
            )
        api_version = obj.get("apiVersion")
        kind = obj.get("kind")
        if not api_version or not kind:
            raise TypeResolutionError(
                "object has no apiVersion or kind set"
            )
        gvk = GroupVersionKind.from_api_version(api_version, kind)
        if not self.recognizes(gvk):
            raise TypeResolutionError(f"no kind {gvk} is registered")
        return gvk

    def __iter__(self) -> Iterator[GroupVersionKind]:
        return iter(list(self._types))

    def __len__(self) -> int:
        return len(self._types)


def default_scheme() -> Scheme:
    """Create a scheme knowing the common built-in Kubernetes kinds."""
    scheme = Scheme()
    scheme.add_known_types(
        "",
        "v1",
        "ConfigMap",
        "Endpoints",
        "Namespace",
        "PersistentVolumeClaim",
        "Pod",
        "Secret",
        "Service",
        "ServiceAccount",
    )
    scheme.add_known_types(
        "apps", "v1", "DaemonSet", "Deployment", "ReplicaSet", "StatefulSet"
    )
    scheme.add_known_types("batch", "v1", "CronJob", "Job")
    scheme.add_known_types(
        "networking.k8s.io", "v1", "Ingress", "NetworkPolicy"
    )
    scheme.add_known_types("policy", "v1", "PodDisruptionBudget")
    scheme.add_known_types(
        "rbac.authorization.k8s.io",
        "v1",
        "ClusterRole",
        "ClusterRoleBinding",
        "Role",
        "RoleBinding",
    )
    scheme.add_known_types("autoscaling", "v2", "HorizontalPodAutoscaler")
    scheme.add_known_types(
        "apiextensions.k8s.io", "v1", "CustomResourceDefinition"
    )
    return scheme
