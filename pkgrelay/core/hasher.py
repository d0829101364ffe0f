"""Canonical JSON helpers for query encoding and redelivery keys.

The canonical form is deterministic: sorted keys, compact separators,
ASCII-only.  The same bytes are used for ``metadata``-style query values and
for the per-event dispatch key, so identical events always encode and hash
identically.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: deterministic, sorted, compact."""
    return canonical_json(obj).encode("utf-8")


def canonical_json(obj: Any) -> str:
    """Canonical JSON text: sorted keys, ``(",", ":")`` separators, ASCII."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def content_address(obj: Any) -> str:
    """Content-address a JSON-serializable object as ``"sha256:<hex>"``."""
    return f"sha256:{sha256_hex(canonical_json_bytes(obj))}"


def compute_dispatch_key(source: str, event_type: str, detail: dict[str, Any]) -> str:
    """Key identifying one logical event across at-least-once redeliveries.

    Two deliveries of the same ``(source, type, detail)`` share a key, which
    lets downstream consumers deduplicate.
    """
    return content_address({"source": source, "type": event_type, "detail": detail})
