"""
Booking status codec (``trade_kernel.domain.booking_status``).

Bookings persist their status as a compact integer and expose a readable
label on every external payload.  The table is one immutable enumeration;
the two lookup directions are built from it once at import time.

Two flavours of lookup are offered:

* ``to_code`` / ``to_label`` keep the historical lenient behaviour: an
  unrecognized value falls back to ``Pending`` (code 1).  Every fallback is
  logged at WARNING so it can be traced to the caller that sent it.
* ``lookup_code`` / ``lookup_label`` return a ``StatusLookup`` result that
  says whether the value was recognized, so callers that must not persist a
  guessed value can refuse instead.  ``require_code`` raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType

from trade_kernel.exceptions import InvalidBookingStatusError
from trade_kernel.logging_config import get_logger

logger = get_logger("domain.booking_status")


class BookingStatus(IntEnum):
    PENDING = 1
    CONFIRMED = 2
    IN_TRANSIT = 3
    DELIVERED = 4
    CANCELLED = 5

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[BookingStatus, str] = {
    BookingStatus.PENDING: "Pending",
    BookingStatus.CONFIRMED: "Confirmed",
    BookingStatus.IN_TRANSIT: "In Transit",
    BookingStatus.DELIVERED: "Delivered",
    BookingStatus.CANCELLED: "Cancelled",
}

CODE_TO_LABEL: MappingProxyType[int, str] = MappingProxyType(
    {int(status): label for status, label in _LABELS.items()}
)
LABEL_TO_CODE: MappingProxyType[str, int] = MappingProxyType(
    {label: code for code, label in CODE_TO_LABEL.items()}
)

DEFAULT_STATUS = BookingStatus.PENDING


@dataclass(frozen=True)
class StatusLookup:
    """Outcome of a strict status lookup.

    ``recognized`` is False when the input was not one of the defined codes
    or labels; ``code`` and ``label`` then hold the Pending default so a
    caller that chooses to fall back can still use them.
    """

    recognized: bool
    code: int
    label: str
    raw: object = None

    @property
    def error(self) -> str | None:
        if self.recognized:
            return None
        return f"Unrecognized booking status: {self.raw!r}"


def lookup_code(value: int | str | None) -> StatusLookup:
    """Resolve a label (or an integer code) to its persisted code."""
    if isinstance(value, bool):
        return _unrecognized(value)
    if isinstance(value, int):
        if value in CODE_TO_LABEL:
            return StatusLookup(True, value, CODE_TO_LABEL[value], value)
        return _unrecognized(value)
    if isinstance(value, str) and value in LABEL_TO_CODE:
        code = LABEL_TO_CODE[value]
        return StatusLookup(True, code, value, value)
    return _unrecognized(value)


def lookup_label(code: int | None) -> StatusLookup:
    """Resolve a persisted code to its label."""
    if isinstance(code, int) and not isinstance(code, bool) and code in CODE_TO_LABEL:
        return StatusLookup(True, code, CODE_TO_LABEL[code], code)
    return _unrecognized(code)


def _unrecognized(raw: object) -> StatusLookup:
    return StatusLookup(False, int(DEFAULT_STATUS), DEFAULT_STATUS.label, raw)


def to_code(value: int | str | None) -> int:
    """
    Map a status to its persisted code.

    Numeric input passes through unchanged.  A recognized label maps to its
    code.  Anything else falls back to 1 (Pending) and is logged.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    result = lookup_code(value)
    if not result.recognized:
        logger.warning(
            "booking_status_fallback",
            extra={"direction": "to_code", "raw_value": repr(value)},
        )
    return result.code


def to_label(code: int | None) -> str:
    """Map a persisted code to its label; unknown codes read as "Pending"."""
    result = lookup_label(code)
    if not result.recognized:
        logger.warning(
            "booking_status_fallback",
            extra={"direction": "to_label", "raw_value": repr(code)},
        )
    return result.label


def require_code(value: int | str | None) -> int:
    """Strict variant of ``to_code``: unrecognized input raises."""
    result = lookup_code(value)
    if not result.recognized:
        raise InvalidBookingStatusError(value)
    return result.code
