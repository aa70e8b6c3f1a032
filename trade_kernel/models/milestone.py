"""
Module: trade_kernel.models.milestone
Responsibility: ORM persistence for shipment lifecycle milestones.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - At most one row per (order_id, milestone_type): uq_milestone_order_type
      is the storage backstop behind the engine's check-then-act.
    - Completed milestones are never deleted or moved back out of COMPLETED
      (db/immutability.py).

Failure modes:
    - IntegrityError on a second row for the same (order_id, milestone_type);
      MilestoneEngine surfaces it as MilestoneAlreadyCompletedError.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from trade_kernel.db.base import TrackedBase
from trade_kernel.domain.milestones import (
    MilestonePriority,
    MilestoneStatus,
)


class Milestone(TrackedBase):
    """
    One discrete lifecycle event of an order's shipment.

    Guarantees:
        - completed_date and completed_by_user_id are set iff status is
          COMPLETED (enforced by the services that write milestones).
    """

    __tablename__ = "milestones"

    __table_args__ = (
        UniqueConstraint("order_id", "milestone_type", name="uq_milestone_order_type"),
        Index("idx_milestones_order", "order_id"),
        Index("idx_milestones_status", "status"),
        Index("idx_milestones_type", "milestone_type"),
    )

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id"),
        nullable=False,
    )

    # User who created the row
    user_id: Mapped[int] = mapped_column(nullable=False)

    # A MilestoneType value for chain milestones; free text for manual ones
    milestone_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=MilestoneStatus.PENDING.value,
        nullable=False,
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    completed_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    completed_by_user_id: Mapped[int | None] = mapped_column(nullable=True)

    priority: Mapped[str] = mapped_column(
        String(20),
        default=MilestonePriority.MEDIUM.value,
        nullable=False,
    )

    is_visible: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Milestone {self.id} order={self.order_id} {self.milestone_type}: {self.status}>"

    @property
    def is_completed(self) -> bool:
        return self.status == MilestoneStatus.COMPLETED
