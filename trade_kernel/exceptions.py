"""
Typed Exception Hierarchy for the Trade Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Two parties that do not trust each other act on the same shipment.  When an
action is refused, both the caller and the audit trail need to know exactly
why, without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)
  4. Every category carries the HTTP status the wire layer answers with

Example - WRONG way to handle errors:
    try:
        engine.goods_shipped(order_id, user_id)
    except Exception as e:
        if "Ready to Ship" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way (what this module enables):
    try:
        engine.goods_shipped(order_id, user_id)
    except MilestonePredecessorMissingError as e:
        respond(e.http_status, {"error": str(e), "missing": e.predecessor})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from TradeKernelError:

    TradeKernelError (base)
    |
    +-- ValidationError                       400
    |   +-- MissingFieldError
    |   +-- InvalidBookingStatusError
    |   +-- InvalidMilestoneStatusError
    |   +-- MissingSealError
    |
    +-- PreconditionError                     400
    |   +-- MilestonePredecessorMissingError
    |
    +-- ConflictError                         400
    |   +-- MilestoneAlreadyCompletedError
    |   +-- MilestoneExistsError
    |   +-- MilestoneRegressionError
    |   +-- ConcurrentModificationError
    |   +-- BookingLinkExistsError
    |   +-- DuplicateReferenceError
    |
    +-- NotFoundError                         404
    |   +-- UnknownMilestoneActionError
    |   +-- OrderNotFoundError
    |   +-- MilestoneNotFoundError
    |   +-- BookingNotFoundError
    |   +-- PackingListNotFoundError
    |
    +-- StorageIntegrityError                 500
    |
    +-- ImmutabilityViolationError            500
    |
    +-- ConfigurationError                    500
        +-- SigningSecretError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-------------------------------------
Validation      | MISSING_FIELD                 | Required request field absent
                | INVALID_BOOKING_STATUS        | Unknown booking label (strict mode)
                | INVALID_MILESTONE_STATUS      | Unknown milestone status value
                | MISSING_SEAL                  | Packing list carries no seal
----------------|-------------------------------|-------------------------------------
Precondition    | MILESTONE_PREDECESSOR_MISSING | Predecessor milestone not completed
----------------|-------------------------------|-------------------------------------
Conflict        | MILESTONE_ALREADY_COMPLETED   | Type already completed for order
                | MILESTONE_EXISTS              | Manual row for an existing type
                | MILESTONE_REGRESSION          | Completed milestone moved back
                | CONCURRENT_MODIFICATION       | Serialization failure on the order
                | BOOKING_LINK_EXISTS           | Booking already linked to order
                | DUPLICATE_REFERENCE           | Packing list reference reused
----------------|-------------------------------|-------------------------------------
Not found       | UNKNOWN_MILESTONE_ACTION      | Unregistered action slug
                | ORDER_NOT_FOUND               | Unknown order id
                | MILESTONE_NOT_FOUND           | Unknown milestone id
                | BOOKING_NOT_FOUND             | Unknown booking id
                | PACKING_LIST_NOT_FOUND        | Unknown packing list reference
----------------|-------------------------------|-------------------------------------
Storage         | STORAGE_INTEGRITY_ERROR       | Constraint violation, not mapped
                | IMMUTABILITY_VIOLATION        | Modifying an append-only record
----------------|-------------------------------|-------------------------------------
Configuration   | SIGNING_SECRET_INVALID        | Attestation secret absent/unsafe

A seal mismatch is NOT an exception.  It is an expected outcome reported
as ``SealVerification(is_valid=False)``.

===============================================================================
"""


class TradeKernelError(Exception):
    """
    Base exception for all trade kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TRADE_KERNEL_ERROR"
    http_status: int = 500


# Validation exceptions


class ValidationError(TradeKernelError):
    """Base exception for malformed or incomplete input."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 400


class MissingFieldError(ValidationError):
    """One or more required fields are missing."""

    code: str = "MISSING_FIELD"

    def __init__(self, fields: list[str] | tuple[str, ...]):
        self.fields = list(fields)
        if len(self.fields) == 1:
            message = f"{self.fields[0]} is required"
        else:
            message = f"{', '.join(self.fields[:-1])} and {self.fields[-1]} are required"
        super().__init__(message)


class InvalidBookingStatusError(ValidationError):
    """Booking status value is not one of the defined codes or labels."""

    code: str = "INVALID_BOOKING_STATUS"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unrecognized booking status: {value!r}")


class InvalidMilestoneStatusError(ValidationError):
    """Milestone status value is not a recognized status."""

    code: str = "INVALID_MILESTONE_STATUS"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unrecognized milestone status: {value!r}")


class MissingSealError(ValidationError):
    """Packing list payload carries no seal to verify."""

    code: str = "MISSING_SEAL"

    def __init__(self, seal_field: str):
        self.seal_field = seal_field
        super().__init__(f"Invalid packing list data - missing {seal_field}")


# Precondition exceptions


class PreconditionError(TradeKernelError):
    """Base exception for actions attempted out of order."""

    code: str = "PRECONDITION_FAILED"
    http_status: int = 400


class MilestonePredecessorMissingError(PreconditionError):
    """
    The predecessor of a milestone has not been completed.

    The message names the missing predecessor so both parties can see
    which step is outstanding.
    """

    code: str = "MILESTONE_PREDECESSOR_MISSING"

    def __init__(self, order_id: int, milestone_type: str, predecessor: str):
        self.order_id = order_id
        self.milestone_type = milestone_type
        self.predecessor = predecessor
        super().__init__(
            f"Milestone '{predecessor}' must be completed before "
            f"'{milestone_type}' for order {order_id}"
        )


# Conflict exceptions


class ConflictError(TradeKernelError):
    """Base exception for actions that collide with existing state."""

    code: str = "CONFLICT"
    http_status: int = 400


class MilestoneAlreadyCompletedError(ConflictError):
    """Milestone type is already completed for the order."""

    code: str = "MILESTONE_ALREADY_COMPLETED"

    def __init__(self, order_id: int, milestone_type: str):
        self.order_id = order_id
        self.milestone_type = milestone_type
        super().__init__(
            f"Milestone '{milestone_type}' already completed for order {order_id}"
        )


class MilestoneExistsError(ConflictError):
    """A milestone row of this type already exists for the order."""

    code: str = "MILESTONE_EXISTS"

    def __init__(self, order_id: int, milestone_type: str):
        self.order_id = order_id
        self.milestone_type = milestone_type
        super().__init__(
            f"Milestone '{milestone_type}' already exists for order {order_id}"
        )


class MilestoneRegressionError(ConflictError):
    """A completed milestone cannot be moved back to an earlier status."""

    code: str = "MILESTONE_REGRESSION"

    def __init__(self, milestone_id: int, requested_status: str):
        self.milestone_id = milestone_id
        self.requested_status = requested_status
        super().__init__(
            f"Milestone {milestone_id} is completed and cannot move to '{requested_status}'"
        )


class ConcurrentModificationError(ConflictError):
    """
    The database refused the transaction because a concurrent writer
    changed the same order (serialization failure).  Safe to retry.
    """

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(
            f"Order {order_id} was modified concurrently, retry the action"
        )


class BookingLinkExistsError(ConflictError):
    """The booking is already linked to the order."""

    code: str = "BOOKING_LINK_EXISTS"

    def __init__(self, booking_id: int, order_id: int):
        self.booking_id = booking_id
        self.order_id = order_id
        super().__init__(f"Booking {booking_id} is already linked to order {order_id}")


class DuplicateReferenceError(ConflictError):
    """Packing list reference number is already in use."""

    code: str = "DUPLICATE_REFERENCE"

    def __init__(self, reference_number: str):
        self.reference_number = reference_number
        super().__init__(f"Packing list reference already exists: {reference_number}")


# Not-found exceptions


class NotFoundError(TradeKernelError):
    """Base exception for unknown records."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class UnknownMilestoneActionError(NotFoundError):
    """No milestone action is registered under the given slug."""

    code: str = "UNKNOWN_MILESTONE_ACTION"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown milestone action: {action}")


class OrderNotFoundError(NotFoundError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class MilestoneNotFoundError(NotFoundError):
    """Milestone with given ID was not found."""

    code: str = "MILESTONE_NOT_FOUND"

    def __init__(self, milestone_id: int):
        self.milestone_id = milestone_id
        super().__init__(f"Milestone not found: {milestone_id}")


class BookingNotFoundError(NotFoundError):
    """Booking with given ID was not found."""

    code: str = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking not found: {booking_id}")


class PackingListNotFoundError(NotFoundError):
    """Packing list reference was not found."""

    code: str = "PACKING_LIST_NOT_FOUND"

    def __init__(self, reference_number: str):
        self.reference_number = reference_number
        super().__init__(f"Packing list not found: {reference_number}")


# Storage exceptions


class StorageIntegrityError(TradeKernelError):
    """
    Storage constraint violation with no more specific meaning.

    Raised when the database rejects a write for a reason the kernel does
    not translate into a domain error (e.g. a foreign key violation).
    """

    code: str = "STORAGE_INTEGRITY_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage integrity violation during {operation}")


class ImmutabilityViolationError(TradeKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ConfigurationError(TradeKernelError):
    """Base exception for invalid runtime configuration."""

    code: str = "CONFIGURATION_ERROR"


class SigningSecretError(ConfigurationError):
    """
    Attestation signing secret is absent or unsafe.

    There is no compiled-in fallback key.  A process that cannot obtain a
    proper secret must not start.
    """

    code: str = "SIGNING_SECRET_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Attestation signing secret rejected: {reason}")
