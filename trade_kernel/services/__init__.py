"""Kernel services - transactional shell around the domain rules."""

from trade_kernel.services.booking_service import BookingInfo, BookingInput, BookingService
from trade_kernel.services.communication_service import (
    CommunicationInfo,
    CommunicationService,
)
from trade_kernel.services.milestone_engine import (
    MilestoneEngine,
    MilestoneInfo,
    MilestoneListener,
    MilestoneOutcome,
    MilestoneProgress,
)
from trade_kernel.services.packing_list_service import (
    PackingListRecord,
    PackingListService,
    SealedPackingList,
)

__all__ = [
    "BookingInfo",
    "BookingInput",
    "BookingService",
    "CommunicationInfo",
    "CommunicationService",
    "MilestoneEngine",
    "MilestoneInfo",
    "MilestoneListener",
    "MilestoneOutcome",
    "MilestoneProgress",
    "PackingListRecord",
    "PackingListService",
    "SealedPackingList",
]
