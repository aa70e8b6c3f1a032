"""
Milestone progression rules (``trade_kernel.domain.milestones``).

Responsibility
--------------
The single, data-driven definition of the shipment lifecycle.  Every guarded
milestone action is one ``MilestoneRule`` in ``MILESTONE_RULES``; the engine
consults this table and never hard-codes a per-action check.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and functions.  ZERO I/O.
No imports from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* Prefix invariant: the completed milestone types of an order always form
  a contiguous prefix of ``MILESTONE_CHAIN``.  ``check_transition`` is the
  only gate through which a type becomes completed.
* Every type appears at most once among the completed types of an order.
* Transitions only move forward; nothing here un-completes a milestone.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from trade_kernel.exceptions import (
    InvalidMilestoneStatusError,
    MilestoneAlreadyCompletedError,
    MilestonePredecessorMissingError,
    ValidationError,
)


class MilestoneType(str, Enum):
    """Lifecycle events of a shipment, in canonical order."""

    ORDER_CONFIRMED = "order_confirmed"
    READY_TO_SHIP = "ready_to_ship"
    GOODS_SHIPPED = "goods_shipped"
    GOODS_ARRIVED = "goods_arrived"
    GOODS_RECEIVED = "goods_received"


class MilestoneStatus(str, Enum):
    """Status of one milestone row.

    Guarded actions only ever write COMPLETED.  PENDING and IN_PROGRESS are
    used by manually entered milestones.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MilestonePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class InvoiceStockStatus(str, Enum):
    """Mirrored shipment status carried on every invoice of an order."""

    PLANNING = "planning"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    ARRIVED = "arrived"
    COMPLETED = "completed"


class OrderStatus(str, Enum):
    """Order status labels driven by milestone transitions."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    COMPLETED = "Completed"


MILESTONE_UPDATE = "milestone_update"


@dataclass(frozen=True)
class MilestoneRule:
    """Everything one guarded transition needs, as data.

    Contract: frozen.  ``predecessor`` is None only for the first link of
    the chain.  ``invoice_status`` / ``order_status`` of None mean the
    transition leaves that field untouched.
    """

    milestone_type: MilestoneType
    predecessor: MilestoneType | None
    action: str
    title: str
    description: str
    invoice_status: InvoiceStockStatus | None
    order_status: OrderStatus | None
    subject: str
    body: str
    success_message: str


MILESTONE_CHAIN: tuple[MilestoneType, ...] = (
    MilestoneType.ORDER_CONFIRMED,
    MilestoneType.READY_TO_SHIP,
    MilestoneType.GOODS_SHIPPED,
    MilestoneType.GOODS_ARRIVED,
    MilestoneType.GOODS_RECEIVED,
)

_RULES: tuple[MilestoneRule, ...] = (
    MilestoneRule(
        milestone_type=MilestoneType.ORDER_CONFIRMED,
        predecessor=None,
        action="confirm-order",
        title="Order Confirmed",
        description="Purchase order confirmed by exporter",
        invoice_status=None,
        order_status=OrderStatus.CONFIRMED,
        subject="Order Confirmed",
        body="Purchase order has been confirmed by the exporter. Production can begin.",
        success_message="Order confirmed successfully",
    ),
    MilestoneRule(
        milestone_type=MilestoneType.READY_TO_SHIP,
        predecessor=MilestoneType.ORDER_CONFIRMED,
        action="ready-to-ship",
        title="Ready to Ship",
        description="Production complete. Goods prepared and ready for dispatch.",
        invoice_status=InvoiceStockStatus.CONFIRMED,
        order_status=None,
        subject="Goods Ready to Ship",
        body=(
            "Production is complete. All goods are prepared and ready for "
            "collection/dispatch."
        ),
        success_message="Goods marked as ready to ship",
    ),
    MilestoneRule(
        milestone_type=MilestoneType.GOODS_SHIPPED,
        predecessor=MilestoneType.READY_TO_SHIP,
        action="goods-shipped",
        title="Goods Shipped",
        description="Goods have been dispatched and are now in transit.",
        invoice_status=InvoiceStockStatus.SHIPPED,
        order_status=OrderStatus.SHIPPED,
        subject="Goods Shipped",
        body=(
            "Goods have been dispatched from origin and are now in transit "
            "to destination."
        ),
        success_message="Goods marked as shipped",
    ),
    MilestoneRule(
        milestone_type=MilestoneType.GOODS_ARRIVED,
        predecessor=MilestoneType.GOODS_SHIPPED,
        action="goods-arrived",
        title="Goods Arrived",
        description="Shipment has arrived at destination and is ready for collection.",
        invoice_status=InvoiceStockStatus.ARRIVED,
        order_status=None,
        subject="Goods Arrived at Destination",
        body=(
            "Shipment has arrived at destination port/facility and is ready "
            "for collection or final delivery."
        ),
        success_message="Goods marked as arrived",
    ),
    MilestoneRule(
        milestone_type=MilestoneType.GOODS_RECEIVED,
        predecessor=MilestoneType.GOODS_ARRIVED,
        action="goods-received",
        title="Goods Received & Verified",
        description="Final delivery completed and goods verified by importer.",
        invoice_status=InvoiceStockStatus.COMPLETED,
        order_status=OrderStatus.COMPLETED,
        subject="Order Complete",
        body=(
            "Goods have been received, verified, and the order is now "
            "complete. Thank you for your business!"
        ),
        success_message="Goods received and order completed",
    ),
)

MILESTONE_RULES: MappingProxyType[MilestoneType, MilestoneRule] = MappingProxyType(
    {rule.milestone_type: rule for rule in _RULES}
)

_RULES_BY_ACTION: MappingProxyType[str, MilestoneRule] = MappingProxyType(
    {rule.action: rule for rule in _RULES}
)

MILESTONE_ACTIONS: tuple[str, ...] = tuple(rule.action for rule in _RULES)


def coerce_milestone_type(value: MilestoneType | str) -> MilestoneType:
    """Accept a MilestoneType or its wire value."""
    if isinstance(value, MilestoneType):
        return value
    try:
        return MilestoneType(value)
    except ValueError:
        raise ValidationError(f"Unknown milestone type: {value!r}") from None


def coerce_milestone_status(value: MilestoneStatus | str) -> MilestoneStatus:
    """Accept a MilestoneStatus or its wire value."""
    if isinstance(value, MilestoneStatus):
        return value
    try:
        return MilestoneStatus(value)
    except ValueError:
        raise InvalidMilestoneStatusError(value) from None


def as_chain_type(value: str | None) -> MilestoneType | None:
    """The chain link named by ``value``, or None for free-text manual types."""
    try:
        return MilestoneType(value)
    except ValueError:
        return None


def predecessor_of(milestone_type: MilestoneType) -> MilestoneType | None:
    return MILESTONE_RULES[milestone_type].predecessor


def rule_for(milestone_type: MilestoneType) -> MilestoneRule:
    return MILESTONE_RULES[milestone_type]


def rule_for_action(action: str) -> MilestoneRule | None:
    """Look up a rule by its wire action slug (e.g. ``"goods-shipped"``)."""
    return _RULES_BY_ACTION.get(action)


def is_contiguous_prefix(completed: Iterable[MilestoneType]) -> bool:
    """True iff ``completed`` is exactly the first N links of the chain."""
    completed_list = list(completed)
    completed_set = set(completed_list)
    if len(completed_set) != len(completed_list):
        return False
    return completed_set == set(MILESTONE_CHAIN[: len(completed_set)])


def next_milestone(completed: Iterable[MilestoneType]) -> MilestoneType | None:
    """The first chain link not yet completed, or None at the terminal state."""
    completed_set = set(completed)
    for milestone_type in MILESTONE_CHAIN:
        if milestone_type not in completed_set:
            return milestone_type
    return None


def check_transition(
    order_id: int,
    completed: Iterable[MilestoneType],
    milestone_type: MilestoneType,
) -> MilestoneRule:
    """
    Decide whether ``milestone_type`` may be completed next.

    Preconditions:
        ``completed`` are the types already completed for ``order_id``.

    Returns:
        The rule to apply.

    Raises:
        MilestoneAlreadyCompletedError: the type is already completed.
        MilestonePredecessorMissingError: the predecessor is not completed;
            the error names the missing predecessor.
    """
    completed_set = set(completed)
    rule = MILESTONE_RULES[milestone_type]

    if milestone_type in completed_set:
        raise MilestoneAlreadyCompletedError(order_id, milestone_type.value)

    if rule.predecessor is not None and rule.predecessor not in completed_set:
        raise MilestonePredecessorMissingError(
            order_id,
            milestone_type.value,
            rule.predecessor.value,
        )

    return rule
