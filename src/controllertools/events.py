"""Recording of Kubernetes events on owning objects."""

__all__ = (
    "EVENT_NORMAL",
    "EVENT_WARNING",
    "EventRecorder",
    "KopfEventRecorder",
)

from collections.abc import Mapping
from typing import Any, Protocol, cast

import kopf

EVENT_NORMAL = "Normal"
EVENT_WARNING = "Warning"


class EventRecorder(Protocol):
    """Records an event on an object."""

    def event(
        self, owner: Mapping[str, Any], type: str, reason: str, message: str
    ) -> None: ...


class KopfEventRecorder:
    """Posts events through kopf's event queue.

    kopf posts the events in the background, so this recorder must be used
    from within a running kopf operator, typically from a handler.
    """

    def event(
        self, owner: Mapping[str, Any], type: str, reason: str, message: str
    ) -> None:
        kopf.event(
            cast("kopf.Body", owner), type=type, reason=reason, message=message
        )
