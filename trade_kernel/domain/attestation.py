"""
Packing-list attestation (``trade_kernel.domain.attestation``).

Responsibility
--------------
Seal an arbitrary packing-list structure so the receiving party can verify
that data handed over out-of-band was not altered after generation.

    seal = HMAC-SHA256(secret, canonical_json(payload without seal field))

Canonical JSON sorts object keys at every nesting level, so two producers
that build the same structure in a different key order get the same seal.

Guarantees
----------
* Any change to any field other than the seal changes the canonical form
  and invalidates the seal.
* The secret is never part of a payload, a log record, or a repr.

Non-goals
---------
* No confidentiality: the payload travels in cleartext.
* No non-repudiation: generator and verifier share one symmetric key, so
  either could forge a seal.
* No replay protection beyond timestamp fields the payload itself carries.

Architecture position
---------------------
**Kernel domain layer** -- pure and stateless after construction; a codec
instance is safe to share between any number of concurrent callers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from trade_kernel.exceptions import SigningSecretError, ValidationError
from trade_kernel.logging_config import get_logger
from trade_kernel.utils.hashing import digests_match, keyed_digest

logger = get_logger("domain.attestation")

SEAL_FIELD = "securityHash"

MIN_SECRET_LENGTH = 32

# Placeholders that have shipped in sample configuration at some point.
KNOWN_PLACEHOLDER_SECRETS = frozenset({
    "your-super-secret-vpl-key-change-this-in-production",
    "change-me",
    "changeme",
    "secret",
})


def validate_signing_secret(secret: str | bytes | None) -> bytes:
    """
    Check that a signing secret is usable and return it as bytes.

    Raises:
        SigningSecretError: if the secret is absent, empty, too short, or a
            known placeholder value.
    """
    if secret is None:
        raise SigningSecretError("no secret configured")
    if isinstance(secret, str):
        if secret.strip() in KNOWN_PLACEHOLDER_SECRETS:
            raise SigningSecretError("secret is a published placeholder value")
        secret_bytes = secret.encode("utf-8")
    elif isinstance(secret, bytes):
        secret_bytes = secret
    else:
        raise SigningSecretError(f"unsupported secret type {type(secret).__name__}")

    if not secret_bytes.strip():
        raise SigningSecretError("secret is empty")
    if len(secret_bytes) < MIN_SECRET_LENGTH:
        raise SigningSecretError(
            f"secret must be at least {MIN_SECRET_LENGTH} bytes"
        )
    return secret_bytes


@dataclass(frozen=True)
class SealVerification:
    """Result of checking a sealed payload.

    A mismatch is an expected outcome, not an error.
    """

    is_valid: bool
    provided_seal: str | None
    computed_seal: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "providedSeal": self.provided_seal,
            "computedSeal": self.computed_seal,
        }


class AttestationCodec:
    """
    Computes and checks keyed tamper-seals over packing-list payloads.

    Contract:
        Constructed once at startup with the deployment secret.  ``generate``
        returns a new mapping, it never mutates its argument.
    """

    def __init__(self, secret: str | bytes, seal_field: str = SEAL_FIELD):
        self._secret = validate_signing_secret(secret)
        self._seal_field = seal_field

    def __repr__(self) -> str:
        return f"<AttestationCodec seal_field={self._seal_field!r}>"

    @property
    def seal_field(self) -> str:
        return self._seal_field

    def strip_seal(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Shallow copy of ``payload`` without the seal field."""
        if not isinstance(payload, Mapping):
            raise ValidationError(
                f"Packing list payload must be an object, got {type(payload).__name__}"
            )
        return {k: v for k, v in payload.items() if k != self._seal_field}

    def compute_seal(self, payload: Mapping[str, Any]) -> str:
        """Seal of ``payload`` ignoring any seal it already carries."""
        unsealed = self.strip_seal(payload)
        try:
            return keyed_digest(self._secret, unsealed)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Packing list payload is not serializable: {exc}") from exc

    def generate(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Return ``payload`` with a freshly computed seal attached."""
        unsealed = self.strip_seal(payload)
        seal = self.compute_seal(unsealed)
        logger.info("seal_generated", extra={"seal_prefix": seal[:8]})
        return {**unsealed, self._seal_field: seal}

    def verify(self, payload: Mapping[str, Any]) -> SealVerification:
        """Recompute the seal from the remaining fields and compare."""
        provided = payload.get(self._seal_field) if isinstance(payload, Mapping) else None
        computed = self.compute_seal(payload)
        is_valid = digests_match(provided, computed)

        logger.info(
            "seal_verified",
            extra={
                "is_valid": is_valid,
                "provided_prefix": provided[:8] if isinstance(provided, str) else None,
                "computed_prefix": computed[:8],
            },
        )
        return SealVerification(
            is_valid=is_valid,
            provided_seal=provided if isinstance(provided, str) else None,
            computed_seal=computed,
        )
