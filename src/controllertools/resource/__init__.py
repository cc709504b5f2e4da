"""The builder contract and per-resource readiness statuses."""

__all__ = (
    "Builder",
    "Comparer",
    "Dependency",
    "DependentBuilder",
    "ManifestBuilder",
    "Status",
    "compute_status",
    "get_dependencies",
    "to_unstructured",
)

from controllertools.resource.builder import (
    Builder,
    Comparer,
    Dependency,
    DependentBuilder,
    get_dependencies,
)
from controllertools.resource.manifest import ManifestBuilder
from controllertools.resource.status import (
    Status,
    compute_status,
    to_unstructured,
)
