"""
Canonical serialization and digests.

The packing-list seal is an HMAC over the canonical JSON form of the
document, so two processes that build the same document must produce the
same bytes: keys sorted at every depth, no whitespace, no NaN, and one
fixed spelling for each non-JSON scalar.
"""

import hashlib
import hmac
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


def _scalar(obj: Any) -> Any:
    # Decimal is normalized so 12.50 and 12.5 seal identically
    if isinstance(obj, Decimal):
        return str(obj.normalize())
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.hex()
    raise TypeError(f"Cannot canonicalize value of type {type(obj).__name__}")


def canonicalize_json(data: dict | list | Any) -> str:
    """Deterministic JSON text for ``data``; raises TypeError on unknown types."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        allow_nan=False,
        default=_scalar,
    )


def canonical_bytes(data: dict | list | Any) -> bytes:
    """UTF-8 bytes of the canonical JSON form."""
    return canonicalize_json(data).encode("utf-8")


def keyed_digest(secret: bytes, data: dict | list | Any) -> str:
    """
    Compute HMAC-SHA256 over the canonical form of ``data``.

    Returns:
        Hex-encoded digest (64 characters).
    """
    return hmac.new(secret, canonical_bytes(data), hashlib.sha256).hexdigest()


def digests_match(provided: str | None, computed: str) -> bool:
    """Constant-time comparison of two hex digests."""
    if not isinstance(provided, str):
        return False
    return hmac.compare_digest(provided.encode("ascii", "replace"), computed.encode("ascii"))


def hash_payload(payload: dict) -> str:
    """
    Compute an unkeyed SHA-256 hash of a payload.

    Used to fingerprint stored packing lists; it proves nothing about who
    produced them.
    """
    return hashlib.sha256(canonical_bytes(payload)).hexdigest()
