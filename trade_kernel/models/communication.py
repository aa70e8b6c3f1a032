"""
Module: trade_kernel.models.communication
Responsibility: Append-only message log shared by both parties of an order.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Rows are never updated or deleted once inserted (db/immutability.py).
    - Every successful milestone transition appends exactly one row with
      message_type "milestone_update".
"""

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trade_kernel.db.base import TrackedBase


class Communication(TrackedBase):
    """One message or audit entry on an order's thread."""

    __tablename__ = "communications"

    __table_args__ = (
        Index("idx_communications_order", "order_id"),
        Index("idx_communications_user", "user_id"),
        Index("idx_communications_type", "message_type"),
        Index("idx_communications_created", "created_at"),
    )

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id"),
        nullable=False,
    )

    user_id: Mapped[int] = mapped_column(nullable=False)

    message_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    subject: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    body: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    priority: Mapped[str] = mapped_column(
        String(20),
        default="normal",
        nullable=False,
    )

    is_read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Communication {self.id} order={self.order_id} {self.message_type}>"
