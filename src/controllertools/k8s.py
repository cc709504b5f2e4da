"""Helpers for interacting with Kubernetes APIs."""

__all__ = ("KubernetesObjectClient", "create_k8sclient")

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import kubernetes
import urllib3
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import (
    DynamicApiError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)

from controllertools import config
from controllertools.errors import ObjectNotFoundError, StoreOperationError
from controllertools.schema import ObjectKey
from controllertools.store import ObjectClient, key_of

MERGE_PATCH = "application/merge-patch+json"


def create_k8sclient() -> kubernetes.client:
    """Get a Kubernetes client configured with available cluster
    authentication.

    If in-cluster authentication is available, that is used. Otherwise
    this function falls-back to using a kubectl config file, which is
    appropriate for development.
    """
    try:
        kubernetes.config.load_incluster_config()
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config()
    return kubernetes.client


@contextmanager
def _wrap_errors(operation: str, key: ObjectKey) -> Iterator[None]:
    try:
        yield
    except NotFoundError as e:
        if operation == "get":
            raise ObjectNotFoundError(key) from e
        raise StoreOperationError(
            operation, key, e.summary(), status=e.status
        ) from e
    except DynamicApiError as e:
        raise StoreOperationError(
            operation, key, e.summary(), status=e.status
        ) from e
    except ResourceNotFoundError as e:
        raise StoreOperationError(
            operation, key, f"kind is not served: {e}"
        ) from e
    except ApiException as e:
        raise StoreOperationError(
            operation, key, str(e.reason), status=e.status
        ) from e
    except (urllib3.exceptions.HTTPError, ResourceNotUniqueError) as e:
        # Transport failures (connection refused, timeouts) and ambiguous
        # kinds have no HTTP status.
        raise StoreOperationError(operation, key, str(e)) from e


class KubernetesObjectClient(ObjectClient):
    """`controllertools.store.ObjectClient` backed by the Kubernetes
    dynamic client.

    Objects are exchanged as raw manifests (`dict`).

    Parameters
    ----------
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    field_manager : `str`, optional
        The field manager sent with writes. Defaults to
        `controllertools.config.field_manager`.
    """

    def __init__(
        self, k8s_client: Any, field_manager: str | None = None
    ) -> None:
        self._dynamic = DynamicClient(k8s_client.ApiClient())
        if field_manager is None:
            field_manager = config.field_manager
        self.field_manager = field_manager

    def _api(self, key: ObjectKey) -> Any:
        return self._dynamic.resources.get(
            api_version=key.gvk.api_version, kind=key.gvk.kind
        )

    def get(self, key: ObjectKey) -> dict[str, Any]:
        with _wrap_errors("get", key):
            result = self._api(key).get(name=key.name, namespace=key.namespace)
        return result.to_dict()

    def create(self, obj: dict[str, Any]) -> dict[str, Any]:
        key = key_of(obj)
        with _wrap_errors("create", key):
            result = self._api(key).create(
                body=obj,
                namespace=key.namespace,
                field_manager=self.field_manager,
            )
        return result.to_dict()

    def update(self, obj: dict[str, Any]) -> dict[str, Any]:
        key = key_of(obj)
        with _wrap_errors("update", key):
            result = self._api(key).replace(
                body=obj,
                name=key.name,
                namespace=key.namespace,
                field_manager=self.field_manager,
            )
        return result.to_dict()

    def delete(self, obj: Mapping[str, Any]) -> None:
        key = key_of(obj)
        with _wrap_errors("delete", key):
            self._api(key).delete(name=key.name, namespace=key.namespace)

    def patch(
        self,
        obj: Mapping[str, Any],
        patch: Mapping[str, Any],
        subresource: str | None = None,
    ) -> dict[str, Any]:
        key = key_of(obj)
        with _wrap_errors("patch", key):
            api = self._api(key)
            if subresource is not None:
                api = api.subresources[subresource]
            result = api.patch(
                body=dict(patch),
                name=key.name,
                namespace=key.namespace,
                content_type=MERGE_PATCH,
                field_manager=self.field_manager,
            )
        return result.to_dict()
