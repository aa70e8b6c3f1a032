"""
Module: trade_kernel.models.order
Responsibility: ORM persistence for orders and the invoices linked to them.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - order_status is driven by milestone transitions
      (Pending -> Confirmed -> Shipped -> Completed).
    - expected_stock_status on every invoice mirrors the shipment state and
      is written only by the milestone cascade.
    - Orders and invoices are never deleted by the kernel.

Audit relevance:
    Order and invoice status are the fields both trading parties read to
    see where a shipment stands; every change to them happens inside the
    same transaction as the milestone row that justifies it.
"""

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trade_kernel.db.base import TrackedBase
from trade_kernel.domain.milestones import InvoiceStockStatus, OrderStatus


class Order(TrackedBase):
    """
    Purchase order shared between exporter and importer.

    Generic order CRUD lives outside the kernel; this model carries only
    what the milestone cascade reads and writes.
    """

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_orders_status", "order_status"),
    )

    order_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    # Owner of the order on the buying side
    user_id: Mapped[int | None] = mapped_column(nullable=True)

    goods_description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    order_status: Mapped[str] = mapped_column(
        String(50),
        default=OrderStatus.PENDING.value,
        nullable=False,
    )

    invoices: Mapped[list["OrderInvoice"]] = relationship(
        back_populates="order",
        order_by="OrderInvoice.id",
    )

    def __repr__(self) -> str:
        return f"<Order {self.id}: {self.order_status}>"


class OrderInvoice(TrackedBase):
    """Invoice raised against an order, mirroring its shipment state."""

    __tablename__ = "order_invoices"

    __table_args__ = (
        Index("idx_order_invoices_order", "order_id"),
    )

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id"),
        nullable=False,
    )

    invoice_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    expected_stock_status: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceStockStatus.PLANNING.value,
        nullable=False,
    )

    order: Mapped[Order] = relationship(back_populates="invoices")

    def __repr__(self) -> str:
        return f"<OrderInvoice {self.id} order={self.order_id}: {self.expected_stock_status}>"
