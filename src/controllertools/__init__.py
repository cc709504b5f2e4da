"""Reconciliation helpers for Kubernetes operators."""

__all__ = (
    "Builder",
    "Comparer",
    "ControllerToolsError",
    "Dependency",
    "DependentBuilder",
    "DiscoveryCache",
    "DiscoveryManager",
    "DiscoveryQueryError",
    "GroupVersionKind",
    "KopfEventRecorder",
    "KubernetesObjectClient",
    "KubernetesResourceLister",
    "ManifestBuilder",
    "ObjectClient",
    "ObjectKey",
    "ObjectNotFoundError",
    "OperationResult",
    "PatchHelper",
    "Reconciler",
    "Scheme",
    "SemanticEquality",
    "Status",
    "StatusConversionError",
    "StoreOperationError",
    "TypeResolutionError",
    "__version__",
    "compute_status",
    "create_k8sclient",
    "default_scheme",
    "patch_on_exit",
)

from controllertools.discovery import (
    DiscoveryCache,
    DiscoveryManager,
    KubernetesResourceLister,
)
from controllertools.equality import SemanticEquality
from controllertools.errors import (
    ControllerToolsError,
    DiscoveryQueryError,
    ObjectNotFoundError,
    StatusConversionError,
    StoreOperationError,
    TypeResolutionError,
)
from controllertools.events import KopfEventRecorder
from controllertools.k8s import KubernetesObjectClient, create_k8sclient
from controllertools.patch import PatchHelper, patch_on_exit
from controllertools.reconciler import Reconciler
from controllertools.resource import (
    Builder,
    Comparer,
    Dependency,
    DependentBuilder,
    ManifestBuilder,
    Status,
    compute_status,
)
from controllertools.schema import (
    GroupVersionKind,
    ObjectKey,
    Scheme,
    default_scheme,
)
from controllertools.store import ObjectClient, OperationResult
from controllertools.version import __version__
