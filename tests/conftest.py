"""Shared fixtures wiring the reconciler to in-memory collaborators."""

from __future__ import annotations

from typing import Any

import pytest
from fakes import FakeLister, FakeObjectClient, FakeRecorder

from controllertools.discovery import ApiResource, DiscoveryManager
from controllertools.reconciler import Reconciler
from controllertools.schema import Scheme, default_scheme


@pytest.fixture
def scheme() -> Scheme:
    return default_scheme()


@pytest.fixture
def lister() -> FakeLister:
    return FakeLister(
        {
            ("", "v1"): [
                ApiResource("pods", "Pod"),
                ApiResource("pods/status", "Pod"),
                ApiResource("services", "Service"),
                ApiResource("configmaps", "ConfigMap"),
                ApiResource("secrets", "Secret"),
            ],
            ("apps", "v1"): [
                ApiResource("deployments", "Deployment"),
                ApiResource("deployments/status", "Deployment"),
                ApiResource("statefulsets", "StatefulSet"),
            ],
        }
    )


@pytest.fixture
def discovery(lister: FakeLister, scheme: Scheme) -> DiscoveryManager:
    return DiscoveryManager(lister, scheme)


@pytest.fixture
def client() -> FakeObjectClient:
    return FakeObjectClient()


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def reconciler(
    client: FakeObjectClient,
    scheme: Scheme,
    recorder: FakeRecorder,
    discovery: DiscoveryManager,
) -> Reconciler:
    return Reconciler(
        client=client, scheme=scheme, recorder=recorder, discovery=discovery
    )


@pytest.fixture
def owner() -> dict[str, Any]:
    return {
        "apiVersion": "example.com/v1",
        "kind": "App",
        "metadata": {
            "name": "example",
            "namespace": "default",
            "uid": "6a1c3f0e-9b1f-4d51-9a43-1b2c3d4e5f60",
        },
    }
