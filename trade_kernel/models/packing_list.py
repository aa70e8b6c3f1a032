"""
Module: trade_kernel.models.packing_list
Responsibility: Record of every sealed packing list handed to a consignee.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - reference_number is unique: one sealed document per reference.
    - json_data is the exact sealed payload, including its seal, so a
      stored document can be re-verified later.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trade_kernel.db.base import TrackedBase
from trade_kernel.db.types import SealHex


class PackingListReference(TrackedBase):
    """One generated, sealed packing list."""

    __tablename__ = "packing_list_references"

    __table_args__ = (
        Index("idx_packing_list_reference", "reference_number", unique=True),
        Index("idx_packing_list_export_order", "export_order_id"),
        Index("idx_packing_list_status", "status"),
    )

    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)

    base_invoice_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    export_order_id: Mapped[int | None] = mapped_column(
        ForeignKey("orders.id"),
        nullable=True,
    )

    exporter_company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    consignee_company: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        default="Generated",
        nullable=False,
    )

    total_lines: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_quantity: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    total_value: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    estimated_ship_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    security_hash: Mapped[SealHex] = mapped_column(String(64), nullable=False)

    json_data: Mapped[str] = mapped_column(Text, nullable=False)

    # Unkeyed fingerprint of json_data, for lookups by content
    payload_hash: Mapped[SealHex] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<PackingListReference {self.reference_number}: {self.status}>"
