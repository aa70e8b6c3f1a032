"""
Domain layer - pure rules and value objects, no I/O.

- milestones: the lifecycle chain and its transition table
- booking_status: compact booking codes and their labels
- attestation: keyed tamper-seal over packing lists
- packing_list: packing-list structure and totals
- clock: injectable time source
"""

from trade_kernel.domain.attestation import (
    SEAL_FIELD,
    AttestationCodec,
    SealVerification,
    validate_signing_secret,
)
from trade_kernel.domain.booking_status import (
    BookingStatus,
    StatusLookup,
    lookup_code,
    lookup_label,
    require_code,
    to_code,
    to_label,
)
from trade_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from trade_kernel.domain.milestones import (
    MILESTONE_ACTIONS,
    MILESTONE_CHAIN,
    MILESTONE_RULES,
    InvoiceStockStatus,
    MilestonePriority,
    MilestoneRule,
    MilestoneStatus,
    MilestoneType,
    OrderStatus,
    check_transition,
    is_contiguous_prefix,
    next_milestone,
    predecessor_of,
    rule_for_action,
)
from trade_kernel.domain.packing_list import (
    PackingLine,
    PackingListRequest,
    build_packing_list,
)

__all__ = [
    "AttestationCodec",
    "SealVerification",
    "SEAL_FIELD",
    "validate_signing_secret",
    "BookingStatus",
    "StatusLookup",
    "lookup_code",
    "lookup_label",
    "require_code",
    "to_code",
    "to_label",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "MILESTONE_ACTIONS",
    "MILESTONE_CHAIN",
    "MILESTONE_RULES",
    "InvoiceStockStatus",
    "MilestonePriority",
    "MilestoneRule",
    "MilestoneStatus",
    "MilestoneType",
    "OrderStatus",
    "check_transition",
    "is_contiguous_prefix",
    "next_milestone",
    "predecessor_of",
    "rule_for_action",
    "PackingLine",
    "PackingListRequest",
    "build_packing_list",
]
