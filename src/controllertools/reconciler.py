"""Reconciliation of the resources owned by an object."""

from __future__ import annotations

__all__ = ("Reconciler",)

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from controllertools import config
from controllertools.discovery import DiscoveryManager
from controllertools.equality import SemanticEquality
from controllertools.errors import (
    ObjectNotFoundError,
    StatusConversionError,
    StoreOperationError,
)
from controllertools.events import EVENT_NORMAL, EVENT_WARNING, EventRecorder
from controllertools.resource.builder import Builder, Comparer
from controllertools.resource.status import Status, compute_status
from controllertools.schema import GroupVersionKind, Scheme, object_key
from controllertools.store import ObjectClient, OperationResult

_ACTIONS = {
    OperationResult.CREATED: ("create", "Create"),
    OperationResult.UPDATED: ("update", "Update"),
    OperationResult.DELETED: ("delete", "Delete"),
}


@dataclass
class _ReconcileUnit:
    """One builder with the state read during the current pass."""

    builder: Builder
    gvk: GroupVersionKind
    current: dict[str, Any] | None
    enabled: bool


class Reconciler:
    """Creates, updates and deletes the resources described by builders.

    Parameters
    ----------
    client : `controllertools.store.ObjectClient`
        The object store client.
    scheme : `controllertools.schema.Scheme`
        The kinds this reconciler may manage.
    recorder : `controllertools.events.EventRecorder`
        Sink for the events recorded on owners.
    discovery : `controllertools.discovery.DiscoveryManager`
        Decides whether the API server serves a kind.
    equality : `controllertools.equality.SemanticEquality`, optional
        Base comparator deciding whether an update is needed. Each pass
        works on its own copy.
    logger : optional
        Logger to use. Defaults to a structlog logger.
    """

    def __init__(
        self,
        client: ObjectClient,
        scheme: Scheme,
        recorder: EventRecorder,
        discovery: DiscoveryManager,
        equality: SemanticEquality | None = None,
        logger: Any | None = None,
    ) -> None:
        self.client = client
        self.scheme = scheme
        self.recorder = recorder
        self.discovery = discovery
        self.equality = equality if equality is not None else SemanticEquality()
        if logger is None:
            logger = structlog.getLogger(__name__)
        self.logger = logger

    def reconcile_builder(
        self,
        owner: Mapping[str, Any],
        builder: Builder,
        logger: Any | None = None,
    ) -> dict[str, Any]:
        """Create or update the single resource of a builder.

        Parameters
        ----------
        owner : `dict`
            The owning object, on which events are recorded.
        builder : `controllertools.resource.Builder`
            The builder of the resource.
        logger : optional
            Logger for this call, e.g. the kopf handler's logger.

        Returns
        -------
        obj : `dict`
            The resulting object.
        """
        logger = logger or self.logger
        obj = builder.build()
        gvk = self.scheme.resolve_kind(obj)
        equality = self.equality.copy()
        if isinstance(builder, Comparer):
            equality.add_func(gvk, builder.equal)

        try:
            obj, result = self.client.create_or_update(
                obj, builder.update, equality
            )
        except StoreOperationError as e:
            result = (
                OperationResult.CREATED
                if e.operation == "create"
                else OperationResult.UPDATED
            )
            self._log_and_record(owner, obj, gvk, result, logger, error=e)
            raise
        except Exception as e:
            # The builder's mutation failed or changed the object's identity.
            name = (obj.get("metadata") or {}).get("name")
            logger.error(
                f"failed to reconcile resource {name} of kind {gvk.kind}: {e}"
            )
            raise

        self._log_and_record(owner, obj, gvk, result, logger)
        return obj

    def reconcile_builders(
        self,
        owner: Mapping[str, Any],
        builders: Sequence[Builder],
        logger: Any | None = None,
    ) -> list[Status]:
        """Reconcile the resources of several builders, in order.

        Builders of kinds the API server does not serve are skipped. The
        resource of a disabled builder is deleted if it exists. Other
        resources are created if missing, and updated only when the
        builder's mutation changes them.

        The builders are processed sequentially. The first failing write
        aborts the pass; passes are safe to retry from scratch.

        Parameters
        ----------
        owner : `dict`
            The owning object, on which events are recorded.
        builders : sequence of `controllertools.resource.Builder`
            The builders, in the order resources must be reconciled.
        logger : optional
            Logger for this pass, e.g. the kopf handler's logger.

        Returns
        -------
        statuses : `list` of `controllertools.resource.Status`
            The status of every enabled and supported resource, in builder
            order.

        Raises
        ------
        controllertools.errors.TypeResolutionError
            Raised if a builder's kind or identity cannot be resolved.
        controllertools.errors.DiscoveryQueryError
            Raised if the support of a kind cannot be determined.
        controllertools.errors.StoreOperationError
            Raised if a read or write call fails.
        """
        logger = logger or self.logger
        equality = self.equality.copy()
        statuses: list[Status] = []

        logger.info(f"Reconciling resources, count={len(builders)}")

        for builder in builders:
            unit = self._resolve(builder, logger)
            if unit is None:
                continue

            if not unit.enabled:
                if unit.current is not None:
                    self._delete(owner, unit.current, unit.gvk, logger)
                continue

            if isinstance(builder, Comparer):
                equality.add_func(unit.gvk, builder.equal)

            if unit.current is not None:
                obj = self._update(
                    owner, unit.builder, unit.current, unit.gvk, equality,
                    logger,
                )
            else:
                obj = self._create(owner, unit.builder, unit.gvk, logger)

            try:
                statuses.append(compute_status(obj, unit.gvk))
            except StatusConversionError as e:
                logger.error(
                    f"Can't compute status of {unit.gvk.kind} "
                    f"{obj.get('metadata', {}).get('name')}: {e}"
                )

        return statuses

    def _resolve(
        self, builder: Builder, logger: Any
    ) -> _ReconcileUnit | None:
        res = builder.build()
        gvk = self.scheme.resolve_kind(res)
        key = object_key(res, gvk)

        if not self.discovery.is_gvk_supported(gvk):
            logger.debug(
                f"Skipping resource {key}: kind {gvk.kind} is not supported "
                "by the API server"
            )
            return None

        try:
            current: dict[str, Any] | None = self.client.get(key)
        except ObjectNotFoundError:
            current = None

        return _ReconcileUnit(
            builder=builder,
            gvk=gvk,
            current=current,
            enabled=builder.enabled(),
        )

    def _delete(
        self,
        owner: Mapping[str, Any],
        obj: dict[str, Any],
        gvk: GroupVersionKind,
        logger: Any,
    ) -> None:
        try:
            self.client.delete(obj)
        except StoreOperationError as e:
            self._log_and_record(
                owner, obj, gvk, OperationResult.DELETED, logger, error=e
            )
            raise
        self._log_and_record(owner, obj, gvk, OperationResult.DELETED, logger)

    def _create(
        self,
        owner: Mapping[str, Any],
        builder: Builder,
        gvk: GroupVersionKind,
        logger: Any,
    ) -> dict[str, Any]:
        obj = builder.build()
        builder.update(obj)
        try:
            created = self.client.create(obj)
        except StoreOperationError as e:
            self._log_and_record(
                owner, obj, gvk, OperationResult.CREATED, logger, error=e
            )
            raise
        self._log_and_record(
            owner, created, gvk, OperationResult.CREATED, logger
        )
        return created

    def _update(
        self,
        owner: Mapping[str, Any],
        builder: Builder,
        obj: dict[str, Any],
        gvk: GroupVersionKind,
        equality: SemanticEquality,
        logger: Any,
    ) -> dict[str, Any]:
        before = copy.deepcopy(obj)
        builder.update(obj)

        # Only write when the mutation changed the object.
        if equality.deep_equal(before, obj, gvk):
            self._log_and_record(
                owner, obj, gvk, OperationResult.UNCHANGED, logger
            )
            return obj

        try:
            updated = self.client.update(obj)
        except StoreOperationError as e:
            self._log_and_record(
                owner, obj, gvk, OperationResult.UPDATED, logger, error=e
            )
            raise
        self._log_and_record(
            owner, updated, gvk, OperationResult.UPDATED, logger
        )
        return updated

    def _log_and_record(
        self,
        owner: Mapping[str, Any],
        obj: Mapping[str, Any],
        gvk: GroupVersionKind,
        result: OperationResult,
        logger: Any,
        error: Exception | None = None,
    ) -> None:
        """Log and record an event on the owner for a write outcome."""
        name = (obj.get("metadata") or {}).get("name")
        if result not in _ACTIONS:
            logger.debug(f"Resource {name} of kind {gvk.kind} is {result.value}")
            return

        action, reason = _ACTIONS[result]
        reason = f"{config.event_reason_prefix}{reason}"
        if error is None:
            message = f"{action}d resource {name} of kind {gvk.kind}"
            logger.info(message)
            self.recorder.event(
                owner, EVENT_NORMAL, f"{reason}Success", message
            )
        else:
            message = f"failed to {action} resource {name} of kind {gvk.kind}"
            logger.error(f"{message}: {error}")
            self.recorder.event(
                owner, EVENT_WARNING, f"{reason}Error", message
            )
