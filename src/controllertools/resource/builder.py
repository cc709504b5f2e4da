"""The contract implemented by callers to describe one managed resource."""

from __future__ import annotations

__all__ = (
    "Builder",
    "Comparer",
    "Dependency",
    "DependentBuilder",
    "get_dependencies",
)

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from controllertools.schema import GroupVersionKind


class Builder(ABC):
    """Describes the desired state of one Kubernetes resource.

    A builder must produce the same identity (kind, namespace and name) on
    every reconciliation pass.
    """

    @abstractmethod
    def build(self) -> dict[str, Any]:
        """Return the initial object.

        Most of the time the object only carries ``apiVersion``, ``kind``
        and the identifying ``metadata`` fields.
        """

    @abstractmethod
    def enabled(self) -> bool:
        """Whether the resource should exist in the current context.

        A disabled builder's resource is deleted if it exists.
        """

    @abstractmethod
    def update(self, obj: dict[str, Any]) -> None:
        """Mutate ``obj`` in place to match the desired state."""


@runtime_checkable
class Comparer(Protocol):
    """A builder capability providing a custom equality for its kind."""

    def equal(self, a: Any, b: Any) -> bool: ...


@dataclass(frozen=True)
class Dependency:
    """A reference to an object another managed object requires."""

    gvk: GroupVersionKind
    name: str
    namespace: str | None = None


@runtime_checkable
class DependentBuilder(Protocol):
    """A builder capability declaring the objects its resource requires."""

    def dependencies(self) -> list[Dependency]: ...


def get_dependencies(builder: Builder) -> list[Dependency]:
    """Get the dependencies a builder declares, if any."""
    if isinstance(builder, DependentBuilder):
        return list(builder.dependencies())
    return []
