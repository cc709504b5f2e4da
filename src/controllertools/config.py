"""Configuration read from the environment as module-level attributes."""

import os

field_manager = os.environ.get(
    "CONTROLLERTOOLS_FIELD_MANAGER", "controller-tools"
)
"""The field manager name sent with every create, update and patch."""

discovery_timeout = int(
    os.environ.get("CONTROLLERTOOLS_DISCOVERY_TIMEOUT", "60")
)
"""Request timeout, in seconds, for API discovery listings."""

event_reason_prefix = os.environ.get(
    "CONTROLLERTOOLS_EVENT_REASON_PREFIX", "Resource"
)
"""Prefix of the event reasons recorded on owners, e.g. ``ResourceCreate``.
"""
