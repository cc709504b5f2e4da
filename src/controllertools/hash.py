"""Content hashes of objects, e.g. to annotate pod templates."""

__all__ = ("sha256", "sha256_object")

import hashlib
import json
from collections.abc import Mapping
from typing import Any


def sha256(obj: Any) -> str:
    """Return the hex SHA-256 digest of the canonical JSON encoding of
    ``obj``.

    Mapping keys are sorted so that equal objects hash identically.
    """
    data = json.dumps(obj, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def sha256_object(obj: Mapping[str, Any]) -> str:
    """Return the hex SHA-256 digest of a manifest."""
    return sha256(obj)
