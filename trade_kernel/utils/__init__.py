"""Utility functions for the trade kernel."""

from trade_kernel.utils.hashing import (
    canonical_bytes,
    canonicalize_json,
    digests_match,
    hash_payload,
    keyed_digest,
)

__all__ = [
    "canonicalize_json",
    "canonical_bytes",
    "keyed_digest",
    "digests_match",
    "hash_payload",
]
