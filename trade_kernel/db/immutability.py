"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Exporter and importer read the same shipment history.  Once a milestone is
completed, or a communication is appended, neither party may rewrite it:
the history only grows.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check the rules:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable                 | Why
----------------|--------------------------------|--------------------------------
Communication   | ALWAYS (from creation)         | Append-only audit/chat log
Milestone       | Once status = COMPLETED        | Milestones only move forward

A completed milestone may still receive updates to display fields
(``is_visible``, ``priority``, ``updated_at``); its identity, type and
completion data are frozen and it can never be deleted.

Bulk ``UPDATE``/``DELETE`` statements bypass ORM events.  The kernel never
issues them against protected tables.
"""

from sqlalchemy import event, inspect

from trade_kernel.exceptions import ImmutabilityViolationError
from trade_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Fields of a completed milestone that may still change
MILESTONE_MUTABLE_FIELDS = frozenset({"is_visible", "priority", "updated_at"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_communication_immutability(mapper, connection, target):
    """Prevent any updates to Communication records."""
    raise _blocked(
        "Communication",
        target.id,
        "UPDATE",
        "Communications are append-only and cannot be modified",
    )


def _check_communication_delete(mapper, connection, target):
    """Prevent deletion of Communication records."""
    raise _blocked(
        "Communication",
        target.id,
        "DELETE",
        "Communications are append-only and cannot be deleted",
    )


def _check_milestone_immutability(mapper, connection, target):
    """
    Prevent changes to a milestone that was already completed.

    The status as loaded from the database decides; a milestone moving from
    pending to completed in this flush is allowed.
    """
    from trade_kernel.domain.milestones import MilestoneStatus

    state = inspect(target)
    status_history = state.attrs.status.history
    original_status = (
        status_history.deleted[0] if status_history.deleted else target.status
    )
    if original_status != MilestoneStatus.COMPLETED:
        return

    changed = {
        attr.key
        for attr in state.attrs
        if attr.history.has_changes() and attr.key not in MILESTONE_MUTABLE_FIELDS
    }
    if changed:
        raise _blocked(
            "Milestone",
            target.id,
            "UPDATE",
            f"Completed milestones cannot be modified (fields: {', '.join(sorted(changed))})",
        )


def _check_milestone_delete(mapper, connection, target):
    """Prevent deletion of completed milestones."""
    from trade_kernel.domain.milestones import MilestoneStatus

    if target.status == MilestoneStatus.COMPLETED:
        raise _blocked(
            "Milestone",
            target.id,
            "DELETE",
            "Completed milestones cannot be deleted",
        )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already registered are not added twice.
    """
    from trade_kernel.models.communication import Communication
    from trade_kernel.models.milestone import Milestone

    for target, event_name, listener_fn in _listener_table(Communication, Milestone):
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)

    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from trade_kernel.models.communication import Communication
    from trade_kernel.models.milestone import Milestone

    for target, event_name, listener_fn in _listener_table(Communication, Milestone):
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)


def _listener_table(communication_cls, milestone_cls):
    return (
        (communication_cls, "before_update", _check_communication_immutability),
        (communication_cls, "before_delete", _check_communication_delete),
        (milestone_cls, "before_update", _check_milestone_immutability),
        (milestone_cls, "before_delete", _check_milestone_delete),
    )
