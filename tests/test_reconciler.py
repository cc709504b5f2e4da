"""Tests for the controllertools.reconciler module."""

from __future__ import annotations

import datetime
from typing import Any
from unittest import mock

import pytest
import yaml
from fakes import FakeLister, FakeObjectClient, FakeRecorder

from controllertools.discovery import ApiResource, DiscoveryManager
from controllertools.errors import (
    DiscoveryQueryError,
    StoreOperationError,
    TypeResolutionError,
)
from controllertools.reconciler import Reconciler
from controllertools.resource import Builder, ManifestBuilder
from controllertools.schema import GroupVersionKind, Scheme


DEPLOYMENT = """
apiVersion: apps/v1
kind: Deployment
metadata:
  name: {name}
  namespace: events
  labels:
    app: {name}
    app.kubernetes.io/managed-by: controller-tools
    app.kubernetes.io/version: "{image_tag}"
spec:
  replicas: {replicas}
  selector:
    matchLabels:
      app: {name}
  template:
    metadata:
      labels:
        app: {name}
    spec:
      containers:
        - name: server
          image: confluentinc/cp-schema-registry:{image_tag}
          ports:
            - containerPort: 8081
"""

SERVICE = """
apiVersion: v1
kind: Service
metadata:
  name: {name}
  namespace: events
spec:
  type: ClusterIP
  ports:
    - name: schema-registry
      port: 8081
  selector:
    app: {name}
"""

JOB = """
apiVersion: batch/v1
kind: Job
metadata:
  name: {name}
  namespace: events
spec:
  template:
    spec:
      restartPolicy: Never
"""


def create_deployment(
    *, name: str, image_tag: str = "8.0.0", replicas: int = 1
) -> dict[str, Any]:
    return yaml.safe_load(
        DEPLOYMENT.format(name=name, image_tag=image_tag, replicas=replicas)
    )


def create_service(*, name: str) -> dict[str, Any]:
    return yaml.safe_load(SERVICE.format(name=name))


def create_job(*, name: str) -> dict[str, Any]:
    return yaml.safe_load(JOB.format(name=name))


class ConfigMapBuilder(Builder):
    """Builder of a ConfigMap holding a generation timestamp."""

    def __init__(self, data: dict[str, str], enabled: bool = True) -> None:
        self.data = data
        self._enabled = enabled

    def build(self) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "settings", "namespace": "events"},
        }

    def enabled(self) -> bool:
        return self._enabled

    def update(self, obj: dict[str, Any]) -> None:
        obj["data"] = dict(self.data)


class IgnoringTimestampBuilder(ConfigMapBuilder):
    """Builder treating ConfigMaps differing only in ``generatedAt`` as
    equal.
    """

    def equal(self, a: dict[str, Any], b: dict[str, Any]) -> bool:
        def strip(obj: dict[str, Any]) -> dict[str, Any]:
            data = dict(obj.get("data") or {})
            data.pop("generatedAt", None)
            return data

        return strip(a) == strip(b)


def test_create_single_deployment(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    builders = [ManifestBuilder(create_deployment(name="registry"), owner=owner)]

    statuses = reconciler.reconcile_builders(owner, builders)

    assert client.calls["create"] == 1
    assert client.writes == 1
    assert len(statuses) == 1
    assert statuses[0].gvk == GroupVersionKind("apps", "v1", "Deployment")
    assert statuses[0].name == "registry"
    assert statuses[0].namespace == "events"
    assert statuses[0].labels["app"] == "registry"
    # No replica is available yet.
    assert not statuses[0].ready
    assert recorder.events == [
        (
            "Normal",
            "ResourceCreateSuccess",
            "created resource registry of kind Deployment",
        )
    ]

    stored = next(iter(client.objects.values()))
    assert stored["spec"]["replicas"] == 1
    assert stored["metadata"]["ownerReferences"][0]["name"] == "example"


def test_reconcile_is_idempotent(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    builders = [
        ManifestBuilder(create_deployment(name="registry"), owner=owner),
        ManifestBuilder(create_service(name="registry"), owner=owner),
    ]

    first = reconciler.reconcile_builders(owner, builders)
    writes = client.writes
    events = len(recorder.events)

    second = reconciler.reconcile_builders(owner, builders)

    assert first == second
    assert client.writes == writes
    assert client.calls["update"] == 0
    assert len(recorder.events) == events


class DefaultingObjectClient(FakeObjectClient):
    """Object store filling in defaults inside list items on every write."""

    def _store(self, obj: dict[str, Any]) -> dict[str, Any]:
        spec = obj.get("spec") or {}
        for port in spec.get("ports") or []:
            port.setdefault("protocol", "TCP")
            port.setdefault("targetPort", port["port"])
        pod_spec = (spec.get("template") or {}).get("spec") or {}
        for container in pod_spec.get("containers") or []:
            container.setdefault("imagePullPolicy", "IfNotPresent")
            container.setdefault(
                "terminationMessagePath", "/dev/termination-log"
            )
            for port in container.get("ports") or []:
                port.setdefault("protocol", "TCP")
        return super()._store(obj)


def test_reconcile_is_idempotent_with_server_defaults(
    scheme: Scheme,
    recorder: FakeRecorder,
    discovery: DiscoveryManager,
    owner: dict[str, Any],
) -> None:
    client = DefaultingObjectClient()
    reconciler = Reconciler(
        client=client, scheme=scheme, recorder=recorder, discovery=discovery
    )
    builders = [
        ManifestBuilder(create_deployment(name="registry")),
        ManifestBuilder(create_service(name="registry")),
    ]

    for _ in range(3):
        reconciler.reconcile_builders(owner, builders)

    assert client.calls["create"] == 2
    assert client.calls["update"] == 0
    assert recorder.reasons == ["ResourceCreateSuccess"] * 2

    reconciler.reconcile_builders(
        owner,
        [ManifestBuilder(create_deployment(name="registry", image_tag="8.1.0"))],
    )

    assert client.calls["update"] == 1
    stored = next(
        obj for obj in client.objects.values() if obj["kind"] == "Deployment"
    )
    container = stored["spec"]["template"]["spec"]["containers"][0]
    assert container["image"] == "confluentinc/cp-schema-registry:8.1.0"
    assert container["imagePullPolicy"] == "IfNotPresent"
    assert container["ports"] == [{"containerPort": 8081, "protocol": "TCP"}]


def test_update_on_desired_change(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    reconciler.reconcile_builders(
        owner, [ManifestBuilder(create_deployment(name="registry"))]
    )

    statuses = reconciler.reconcile_builders(
        owner,
        [ManifestBuilder(create_deployment(name="registry", replicas=3))],
    )

    assert client.calls["update"] == 1
    assert recorder.reasons[-1] == "ResourceUpdateSuccess"
    assert len(statuses) == 1
    stored = next(iter(client.objects.values()))
    assert stored["spec"]["replicas"] == 3


def test_update_preserves_unmanaged_fields(
    reconciler: Reconciler,
    client: FakeObjectClient,
    owner: dict[str, Any],
) -> None:
    live = create_deployment(name="registry")
    live["metadata"]["annotations"] = {"deployment.kubernetes.io/revision": "4"}
    live["spec"]["progressDeadlineSeconds"] = 600
    live["status"] = {
        "replicas": 1,
        "updatedReplicas": 1,
        "readyReplicas": 1,
        "availableReplicas": 1,
    }
    client.add(live)

    statuses = reconciler.reconcile_builders(
        owner,
        [ManifestBuilder(create_deployment(name="registry", image_tag="8.1.0"))],
    )

    stored = next(iter(client.objects.values()))
    assert stored["metadata"]["annotations"] == {
        "deployment.kubernetes.io/revision": "4"
    }
    assert stored["spec"]["progressDeadlineSeconds"] == 600
    assert stored["spec"]["template"]["spec"]["containers"][0]["image"] == (
        "confluentinc/cp-schema-registry:8.1.0"
    )
    assert statuses[0].ready


def test_disabled_builder_deletes_existing(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    client.add(create_service(name="registry"))

    statuses = reconciler.reconcile_builders(
        owner,
        [ManifestBuilder(create_service(name="registry"), enabled=False)],
    )

    assert statuses == []
    assert client.calls["delete"] == 1
    assert client.writes == 1
    assert client.objects == {}
    assert recorder.events == [
        (
            "Normal",
            "ResourceDeleteSuccess",
            "deleted resource registry of kind Service",
        )
    ]


def test_disabled_builder_without_resource_is_noop(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    statuses = reconciler.reconcile_builders(
        owner,
        [ManifestBuilder(create_service(name="registry"), enabled=False)],
    )

    assert statuses == []
    assert client.writes == 0
    assert recorder.events == []


def test_unsupported_kind_is_skipped(
    reconciler: Reconciler,
    client: FakeObjectClient,
    owner: dict[str, Any],
) -> None:
    # batch/v1 Jobs are known to the scheme but not served by the cluster.
    builders = [
        ManifestBuilder(create_job(name="migrate")),
        ManifestBuilder(create_service(name="registry")),
    ]

    statuses = reconciler.reconcile_builders(owner, builders)

    assert [status.kind for status in statuses] == ["Service"]
    # One lookup and one create, both for the Service.
    assert client.calls["get"] == 1
    assert client.calls["create"] == 1
    assert client.writes == 1


def test_statuses_follow_builder_order(
    reconciler: Reconciler, owner: dict[str, Any]
) -> None:
    builders = [
        ManifestBuilder(create_service(name="b")),
        ManifestBuilder(create_deployment(name="a")),
        ManifestBuilder(create_service(name="a")),
    ]

    statuses = reconciler.reconcile_builders(owner, builders)

    assert [(status.kind, status.name) for status in statuses] == [
        ("Service", "b"),
        ("Deployment", "a"),
        ("Service", "a"),
    ]


def test_custom_equality_suppresses_update(
    reconciler: Reconciler,
    client: FakeObjectClient,
    owner: dict[str, Any],
) -> None:
    reconciler.reconcile_builders(
        owner,
        [IgnoringTimestampBuilder({"level": "info", "generatedAt": "1"})],
    )

    reconciler.reconcile_builders(
        owner,
        [IgnoringTimestampBuilder({"level": "info", "generatedAt": "2"})],
    )
    assert client.calls["update"] == 0

    reconciler.reconcile_builders(
        owner,
        [IgnoringTimestampBuilder({"level": "debug", "generatedAt": "3"})],
    )
    assert client.calls["update"] == 1


def test_custom_equality_is_scoped_to_the_pass(
    reconciler: Reconciler,
    client: FakeObjectClient,
    owner: dict[str, Any],
) -> None:
    reconciler.reconcile_builders(
        owner,
        [IgnoringTimestampBuilder({"level": "info", "generatedAt": "1"})],
    )

    # A builder without the capability compares structurally again.
    reconciler.reconcile_builders(
        owner, [ConfigMapBuilder({"level": "info", "generatedAt": "2"})]
    )
    assert client.calls["update"] == 1


def test_unknown_kind_fails_pass(
    reconciler: Reconciler, client: FakeObjectClient, owner: dict[str, Any]
) -> None:
    widget = {
        "apiVersion": "example.com/v1",
        "kind": "Widget",
        "metadata": {"name": "w", "namespace": "events"},
    }
    with pytest.raises(TypeResolutionError):
        reconciler.reconcile_builders(owner, [ManifestBuilder(widget)])
    assert client.writes == 0


def test_discovery_failure_fails_pass(
    reconciler: Reconciler,
    lister: FakeLister,
    client: FakeObjectClient,
    owner: dict[str, Any],
) -> None:
    lister.error = ConnectionError("connection refused")

    with pytest.raises(DiscoveryQueryError):
        reconciler.reconcile_builders(
            owner, [ManifestBuilder(create_service(name="registry"))]
        )
    assert client.calls["get"] == 0


def test_fetch_failure_fails_pass(
    reconciler: Reconciler, client: FakeObjectClient, owner: dict[str, Any]
) -> None:
    client.failures["get"] = RuntimeError("etcdserver: request timed out")

    with pytest.raises(StoreOperationError) as excinfo:
        reconciler.reconcile_builders(
            owner, [ManifestBuilder(create_service(name="registry"))]
        )
    assert excinfo.value.operation == "get"
    assert client.writes == 0


def test_create_failure_aborts_remaining_builders(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    client.failures["create"] = RuntimeError("admission webhook denied")
    builders = [
        ManifestBuilder(create_service(name="registry")),
        ManifestBuilder(create_deployment(name="registry")),
    ]

    with pytest.raises(StoreOperationError) as excinfo:
        reconciler.reconcile_builders(owner, builders)

    assert excinfo.value.operation == "create"
    assert client.calls["create"] == 1
    assert client.calls["get"] == 1
    assert recorder.events == [
        (
            "Warning",
            "ResourceCreateError",
            "failed to create resource registry of kind Service",
        )
    ]


def test_delete_failure_fails_pass(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    client.add(create_service(name="registry"))
    client.failures["delete"] = RuntimeError("forbidden")

    with pytest.raises(StoreOperationError):
        reconciler.reconcile_builders(
            owner,
            [ManifestBuilder(create_service(name="registry"), enabled=False)],
        )
    assert recorder.reasons == ["ResourceDeleteError"]


def test_update_failure_fails_pass(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    client.add(create_deployment(name="registry"))
    client.failures["update"] = RuntimeError("conflict")

    with pytest.raises(StoreOperationError):
        reconciler.reconcile_builders(
            owner,
            [ManifestBuilder(create_deployment(name="registry", replicas=2))],
        )
    assert recorder.reasons == ["ResourceUpdateError"]


def test_status_failure_drops_only_that_entry(
    reconciler: Reconciler, owner: dict[str, Any]
) -> None:
    class TimestampBuilder(ConfigMapBuilder):
        def update(self, obj: dict[str, Any]) -> None:
            obj["data"] = {"createdAt": datetime.datetime(2024, 1, 1)}

    statuses = reconciler.reconcile_builders(
        owner,
        [
            TimestampBuilder({}),
            ManifestBuilder(create_service(name="registry")),
        ],
    )

    assert [status.kind for status in statuses] == ["Service"]


def test_reconcile_builder(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    obj = reconciler.reconcile_builder(owner, ConfigMapBuilder({"a": "1"}))
    assert obj["data"] == {"a": "1"}
    assert recorder.reasons == ["ResourceCreateSuccess"]

    reconciler.reconcile_builder(owner, ConfigMapBuilder({"a": "1"}))
    assert client.calls["update"] == 0
    assert recorder.reasons == ["ResourceCreateSuccess"]

    obj = reconciler.reconcile_builder(owner, ConfigMapBuilder({"a": "2"}))
    assert obj["data"] == {"a": "2"}
    assert client.calls["update"] == 1
    assert recorder.reasons == ["ResourceCreateSuccess", "ResourceUpdateSuccess"]

    # The custom equality also applies to single-builder reconciliation.
    reconciler.reconcile_builder(
        owner, IgnoringTimestampBuilder({"a": "2", "generatedAt": "9"})
    )
    assert client.calls["update"] == 1


def test_reconcile_builder_mutation_failure(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    class BrokenBuilder(ConfigMapBuilder):
        def update(self, obj: dict[str, Any]) -> None:
            raise KeyError("data")

    logger = mock.Mock()
    with pytest.raises(KeyError):
        reconciler.reconcile_builder(owner, BrokenBuilder({}), logger=logger)

    logger.error.assert_called_once()
    assert "settings" in logger.error.call_args.args[0]
    assert client.writes == 0
    assert recorder.events == []


def test_reconcile_builder_failure(
    reconciler: Reconciler,
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
) -> None:
    client.failures["create"] = RuntimeError("quota exceeded")

    with pytest.raises(StoreOperationError):
        reconciler.reconcile_builder(owner, ConfigMapBuilder({"a": "1"}))
    assert recorder.events == [
        (
            "Warning",
            "ResourceCreateError",
            "failed to create resource settings of kind ConfigMap",
        )
    ]


def test_custom_scheme_kind(
    client: FakeObjectClient,
    recorder: FakeRecorder,
    owner: dict[str, Any],
    scheme: Scheme,
) -> None:
    gvk = GroupVersionKind("kafka.strimzi.io", "v1beta2", "KafkaUser")
    scheme.add_known_type(gvk)
    lister = FakeLister(
        {("kafka.strimzi.io", "v1beta2"): [ApiResource("kafkausers", "KafkaUser")]}
    )
    reconciler = Reconciler(
        client=client,
        scheme=scheme,
        recorder=recorder,
        discovery=DiscoveryManager(lister, scheme),
    )
    user = {
        "apiVersion": "kafka.strimzi.io/v1beta2",
        "kind": "KafkaUser",
        "metadata": {"name": "registry", "namespace": "events"},
        "spec": {"authentication": {"type": "tls"}},
    }

    statuses = reconciler.reconcile_builders(owner, [ManifestBuilder(user)])

    assert statuses[0].gvk == gvk
    assert statuses[0].ready
