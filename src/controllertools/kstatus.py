"""Readiness inference for unstructured Kubernetes objects.

The rules follow the conventions of the ``kstatus`` library used by
kubectl-style tooling: an object is *Current* once its controller has
observed the latest generation and the object's status reports that the
desired state is fully rolled out.
"""

from __future__ import annotations

__all__ = ("AggregateStatus", "ComputedStatus", "compute")

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


class AggregateStatus(enum.Enum):
    """The aggregate state of an object."""

    CURRENT = "Current"
    IN_PROGRESS = "InProgress"
    FAILED = "Failed"
    TERMINATING = "Terminating"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class ComputedStatus:
    """The aggregate state of an object with a human-readable message."""

    status: AggregateStatus
    message: str = ""


def _current(message: str = "Resource is current") -> ComputedStatus:
    return ComputedStatus(AggregateStatus.CURRENT, message)


def _in_progress(message: str) -> ComputedStatus:
    return ComputedStatus(AggregateStatus.IN_PROGRESS, message)


def _failed(message: str) -> ComputedStatus:
    return ComputedStatus(AggregateStatus.FAILED, message)


def _mapping(obj: Mapping[str, Any], field: str) -> Mapping[str, Any]:
    value = obj.get(field)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"field {field} is not a mapping")
    return value


def _int(obj: Mapping[str, Any], field: str, default: int = 0) -> int:
    value = obj.get(field)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {field} is not an integer")
    return value


def _conditions(status: Mapping[str, Any]) -> dict[str, Mapping[str, Any]]:
    conditions = status.get("conditions") or []
    if not isinstance(conditions, list):
        raise ValueError("field status.conditions is not a list")
    return {
        condition["type"]: condition
        for condition in conditions
        if isinstance(condition, Mapping) and "type" in condition
    }


def _is_true(condition: Mapping[str, Any] | None) -> bool:
    return condition is not None and condition.get("status") == "True"


def _is_false(condition: Mapping[str, Any] | None) -> bool:
    return condition is not None and condition.get("status") == "False"


def _deployment_status(obj: Mapping[str, Any]) -> ComputedStatus:
    spec = _mapping(obj, "spec")
    status = _mapping(obj, "status")
    conditions = _conditions(status)

    progressing = conditions.get("Progressing")
    if progressing is not None and (
        progressing.get("reason") == "ProgressDeadlineExceeded"
    ):
        return _failed("Progress deadline exceeded")

    spec_replicas = _int(spec, "replicas", 1)
    replicas = _int(status, "replicas")
    updated = _int(status, "updatedReplicas")
    ready = _int(status, "readyReplicas")
    available = _int(status, "availableReplicas")

    if spec_replicas > replicas:
        return _in_progress(f"Replicas: {replicas}/{spec_replicas}")
    if spec_replicas > updated:
        return _in_progress(f"Updated: {updated}/{spec_replicas}")
    if replicas > updated:
        return _in_progress(f"Pending termination: {replicas - updated}")
    if updated > available:
        return _in_progress(f"Available: {available}/{updated}")
    if spec_replicas > ready:
        return _in_progress(f"Ready: {ready}/{spec_replicas}")
    if _is_false(conditions.get("Available")):
        return _in_progress("Deployment not Available")
    return _current(f"Deployment is available. Replicas: {replicas}")


def _statefulset_status(obj: Mapping[str, Any]) -> ComputedStatus:
    spec = _mapping(obj, "spec")
    status = _mapping(obj, "status")

    spec_replicas = _int(spec, "replicas", 1)
    ready = _int(status, "readyReplicas")
    current = _int(status, "currentReplicas")
    updated = _int(status, "updatedReplicas")

    strategy = _mapping(spec, "updateStrategy").get("type", "RollingUpdate")
    if strategy != "RollingUpdate":
        return _current(f"StatefulSet uses {strategy} update strategy")

    if spec_replicas > ready:
        return _in_progress(f"Ready: {ready}/{spec_replicas}")

    partition = _int(
        _mapping(_mapping(spec, "updateStrategy"), "rollingUpdate"),
        "partition",
    )
    if partition > 0:
        expected = spec_replicas - partition
        if updated < expected:
            return _in_progress(
                f"Partitioned roll out: {updated}/{expected}"
            )
        return _current(f"Partitioned roll out complete: {updated}")

    if spec_replicas > current:
        return _in_progress(f"Current: {current}/{spec_replicas}")
    if status.get("currentRevision") != status.get("updateRevision"):
        return _in_progress("Waiting for updated revision")
    return _current(f"All replicas scheduled as expected. Replicas: {ready}")


def _daemonset_status(obj: Mapping[str, Any]) -> ComputedStatus:
    status = _mapping(obj, "status")
    if not status:
        return _in_progress("Missing status")

    desired = _int(status, "desiredNumberScheduled")
    current = _int(status, "currentNumberScheduled")
    updated = _int(status, "updatedNumberScheduled")
    available = _int(status, "numberAvailable")
    ready = _int(status, "numberReady")

    if desired > current:
        return _in_progress(f"Current: {current}/{desired}")
    if desired > updated:
        return _in_progress(f"Updated: {updated}/{desired}")
    if desired > available:
        return _in_progress(f"Available: {available}/{desired}")
    if desired > ready:
        return _in_progress(f"Ready: {ready}/{desired}")
    return _current(f"All replicas scheduled as expected. Replicas: {desired}")


def _replicaset_status(obj: Mapping[str, Any]) -> ComputedStatus:
    spec = _mapping(obj, "spec")
    status = _mapping(obj, "status")
    conditions = _conditions(status)

    if _is_true(conditions.get("ReplicaFailure")):
        return _in_progress("Replica Failure condition. Check Pods")

    spec_replicas = _int(spec, "replicas", 1)
    labelled = _int(status, "fullyLabeledReplicas")
    available = _int(status, "availableReplicas")
    ready = _int(status, "readyReplicas")

    if spec_replicas > labelled:
        return _in_progress(f"Labelled: {labelled}/{spec_replicas}")
    if spec_replicas > available:
        return _in_progress(f"Available: {available}/{spec_replicas}")
    if spec_replicas > ready:
        return _in_progress(f"Ready: {ready}/{spec_replicas}")
    return _current(f"ReplicaSet is available. Replicas: {spec_replicas}")


def _pod_status(obj: Mapping[str, Any]) -> ComputedStatus:
    status = _mapping(obj, "status")
    phase = status.get("phase")
    if phase == "Succeeded":
        return _current("Pod has completed successfully")
    if phase == "Failed":
        return _failed("Pod has completed, but not successfully")
    if phase == "Running":
        if _is_true(_conditions(status).get("Ready")):
            return _current("Pod is Ready")
        return _in_progress("Pod is running but is not Ready")
    return _in_progress(f"Pod phase is {phase or 'unknown'}")


def _job_status(obj: Mapping[str, Any]) -> ComputedStatus:
    status = _mapping(obj, "status")
    conditions = _conditions(status)
    if _is_true(conditions.get("Failed")):
        return _failed("Job Failed")
    if _is_true(conditions.get("Complete")):
        return _current("Job Completed")
    if status.get("startTime") is None:
        return _in_progress("Job not started")
    return _current(f"Job in progress. Active: {_int(status, 'active')}")


def _pvc_status(obj: Mapping[str, Any]) -> ComputedStatus:
    phase = _mapping(obj, "status").get("phase")
    if phase == "Bound":
        return _current("PVC is Bound")
    return _in_progress("PVC is not Bound")


def _service_status(obj: Mapping[str, Any]) -> ComputedStatus:
    spec = _mapping(obj, "spec")
    if spec.get("type") == "LoadBalancer":
        status = _mapping(obj, "status")
        ingress = _mapping(status, "loadBalancer").get("ingress")
        if not ingress:
            return _in_progress("Waiting for load balancer ingress")
    return _current("Service is ready")


def _pdb_status(obj: Mapping[str, Any]) -> ComputedStatus:
    status = _mapping(obj, "status")
    if not status:
        return _in_progress("Missing status")
    if _is_false(_conditions(status).get("DisruptionAllowed")):
        return _in_progress("Disruptions not yet computed")
    return _current("Budget is computed")


def _crd_status(obj: Mapping[str, Any]) -> ComputedStatus:
    conditions = _conditions(_mapping(obj, "status"))
    if _is_false(conditions.get("NamesAccepted")):
        return _failed("CRD names have not been accepted")
    if _is_true(conditions.get("Established")):
        return _current("CRD is established")
    return _in_progress("CRD is not established")


_KIND_RULES: dict[
    tuple[str, str], Callable[[Mapping[str, Any]], ComputedStatus]
] = {
    ("apps", "Deployment"): _deployment_status,
    ("apps", "StatefulSet"): _statefulset_status,
    ("apps", "DaemonSet"): _daemonset_status,
    ("apps", "ReplicaSet"): _replicaset_status,
    ("", "Pod"): _pod_status,
    ("batch", "Job"): _job_status,
    ("", "PersistentVolumeClaim"): _pvc_status,
    ("", "Service"): _service_status,
    ("policy", "PodDisruptionBudget"): _pdb_status,
    ("apiextensions.k8s.io", "CustomResourceDefinition"): _crd_status,
}


def _generic_status(obj: Mapping[str, Any]) -> ComputedStatus:
    conditions = _conditions(_mapping(obj, "status"))
    stalled = conditions.get("Stalled")
    if _is_true(stalled):
        return _failed(stalled.get("message", "Resource is stalled"))
    reconciling = conditions.get("Reconciling")
    if _is_true(reconciling):
        return _in_progress(
            reconciling.get("message", "Resource is reconciling")
        )
    ready = conditions.get("Ready")
    if _is_false(ready):
        return _in_progress(ready.get("message", "Resource is not Ready"))
    return _current()


def compute(obj: Mapping[str, Any]) -> ComputedStatus:
    """Compute the aggregate state of an unstructured object.

    Parameters
    ----------
    obj : `dict`
        The object, with ``apiVersion``, ``kind``, ``metadata`` and,
        optionally, ``spec`` and ``status`` fields.

    Returns
    -------
    status : `ComputedStatus`
        The aggregate state.

    Raises
    ------
    ValueError
        Raised if the object is malformed, e.g. if a standard field has an
        unexpected type.
    """
    if not isinstance(obj, Mapping):
        raise ValueError("object is not a mapping")
    metadata = _mapping(obj, "metadata")

    if metadata.get("deletionTimestamp"):
        return ComputedStatus(
            AggregateStatus.TERMINATING, "Resource scheduled for deletion"
        )

    status = _mapping(obj, "status")
    if "observedGeneration" in status:
        generation = _int(metadata, "generation")
        observed = _int(status, "observedGeneration")
        if observed < generation:
            return _in_progress(
                f"{obj.get('kind', 'Resource')} generation is {generation}, "
                f"but latest observed generation is {observed}"
            )

    group, _, _ = str(obj.get("apiVersion", "")).rpartition("/")
    rule = _KIND_RULES.get((group, str(obj.get("kind", ""))))
    if rule is None:
        return _generic_status(obj)
    return rule(obj)
