"""
Module: trade_kernel.models.booking
Responsibility: Freight bookings and their links to orders.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - status is stored as the compact code 1..5 (domain/booking_status.py);
      labels never reach the database.
    - At most one link per (order_id, booking_id).
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, SmallInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trade_kernel.db.base import TrackedBase
from trade_kernel.domain.booking_status import BookingStatus


class Booking(TrackedBase):
    """Carrier booking for one or more orders."""

    __tablename__ = "bookings"

    __table_args__ = (
        Index("idx_bookings_reference", "booking_reference"),
        Index("idx_bookings_status", "status"),
    )

    booking_reference: Mapped[str] = mapped_column(String(255), nullable=False)
    booking_date: Mapped[datetime | None] = mapped_column(nullable=True)
    load_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    transport_detail_1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    transport_detail_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    master_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    house_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_vessel: Mapped[str | None] = mapped_column(String(255), nullable=True)
    vessel_call_sign: Mapped[str | None] = mapped_column(String(100), nullable=True)
    port_of_loading: Mapped[str | None] = mapped_column(String(255), nullable=True)
    destination: Mapped[str | None] = mapped_column(String(255), nullable=True)
    estimated_arrival: Mapped[datetime | None] = mapped_column(nullable=True)
    estimated_pickup: Mapped[datetime | None] = mapped_column(nullable=True)
    ship_carrier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[int] = mapped_column(
        SmallInteger,
        default=int(BookingStatus.PENDING),
        nullable=False,
    )

    links: Mapped[list["BookingOrderLink"]] = relationship(
        back_populates="booking",
        order_by="BookingOrderLink.id",
    )

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.booking_reference}: {self.status}>"


class BookingOrderLink(TrackedBase):
    """Quantity of an order carried under a booking."""

    __tablename__ = "booking_order_links"

    __table_args__ = (
        UniqueConstraint("order_id", "booking_id", name="uq_booking_order_link"),
        Index("idx_booking_links_order", "order_id"),
    )

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id"),
        nullable=False,
    )

    booking_id: Mapped[int] = mapped_column(
        ForeignKey("bookings.id"),
        nullable=False,
    )

    booked_qty: Mapped[Decimal] = mapped_column(
        default=Decimal("1"),
        nullable=False,
    )

    booking: Mapped[Booking] = relationship(back_populates="links")
