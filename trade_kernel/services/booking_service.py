"""
Service layer for freight bookings.

Bookings persist their status as a compact integer code and expose the
readable label on every DTO.  The status codec
(``domain.booking_status``) is applied at every read and write here, so
no caller ever sees a raw code without its label or writes a label to
storage.

With ``strict_status=True`` an unrecognized status is rejected with
InvalidBookingStatusError.  Otherwise the historical lenient behaviour
applies: unknown labels are stored as Pending, and the fallback is logged.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trade_kernel.db.engine import unit_of_work
from trade_kernel.domain.booking_status import require_code, to_code, to_label
from trade_kernel.domain.clock import Clock
from trade_kernel.exceptions import (
    BookingLinkExistsError,
    BookingNotFoundError,
    MissingFieldError,
    OrderNotFoundError,
)
from trade_kernel.logging_config import get_logger
from trade_kernel.models.booking import Booking, BookingOrderLink
from trade_kernel.models.order import Order
from trade_kernel.services.base import BaseService

logger = get_logger("services.booking")


@dataclass(frozen=True)
class BookingInput:
    """Writable booking fields as received from a caller.

    ``status`` may be a label (``"In Transit"``) or a code (``3``).
    Date fields accept datetimes, dates or ISO strings; anything that does
    not parse is stored as empty.
    """

    booking_reference: str
    booking_date: datetime | date | str | None = None
    load_type: str | None = None
    transport_detail_1: str | None = None
    transport_detail_2: str | None = None
    master_number: str | None = None
    house_number: str | None = None
    first_vessel: str | None = None
    vessel_call_sign: str | None = None
    port_of_loading: str | None = None
    destination: str | None = None
    estimated_arrival: datetime | date | str | None = None
    estimated_pickup: datetime | date | str | None = None
    ship_carrier: str | None = None
    status: int | str | None = None


@dataclass(frozen=True)
class BookingInfo:
    id: int
    booking_reference: str
    booking_date: datetime | None
    load_type: str | None
    transport_detail_1: str | None
    transport_detail_2: str | None
    master_number: str | None
    house_number: str | None
    first_vessel: str | None
    vessel_call_sign: str | None
    port_of_loading: str | None
    destination: str | None
    estimated_arrival: datetime | None
    estimated_pickup: datetime | None
    ship_carrier: str | None
    status_code: int
    status: str
    is_linked: bool = False
    booked_qty: Decimal = Decimal("0")


_DATE_FIELDS = frozenset({"booking_date", "estimated_arrival", "estimated_pickup"})


def sanitize_datetime(value: datetime | date | str | None) -> datetime | None:
    """Best-effort parse; empty or unparseable input becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            logger.debug("booking_date_unparseable", extra={"raw_value": value})
            return None
    return None


class BookingService(BaseService[Booking]):
    """Create, update and read bookings, and link them to orders."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
        strict_status: bool = False,
    ):
        super().__init__(session, clock=clock, auto_commit=auto_commit)
        self.strict_status = strict_status

    def _status_code(self, value: int | str | None) -> int:
        if value is None or value == "":
            return to_code("Pending")
        if self.strict_status:
            return require_code(value)
        return to_code(value)

    def _apply(self, booking: Booking, data: BookingInput) -> None:
        for f in fields(BookingInput):
            if f.name == "status":
                continue
            value = getattr(data, f.name)
            if f.name in _DATE_FIELDS:
                value = sanitize_datetime(value)
            setattr(booking, f.name, value)
        booking.status = self._status_code(data.status)

    def create_booking(
        self,
        data: BookingInput,
        order_id: int | None = None,
        booked_qty: Decimal | int = 1,
    ) -> BookingInfo:
        """
        Create a booking, optionally linked to an order.

        Raises:
            MissingFieldError: booking reference is blank.
            InvalidBookingStatusError: unknown status in strict mode.
            OrderNotFoundError: ``order_id`` given but unknown.
        """
        if not data.booking_reference or not str(data.booking_reference).strip():
            raise MissingFieldError(["bookingreference"])

        with unit_of_work(self.session, commit=self.auto_commit):
            booking = Booking()
            self._apply(booking, data)
            self.session.add(booking)
            self.session.flush()
            if order_id is not None:
                self._link(booking.id, order_id, booked_qty)

        logger.info(
            "booking_created",
            extra={
                "booking_id": booking.id,
                "status_code": booking.status,
                "order_id": str(order_id) if order_id is not None else None,
            },
        )
        return self.get_booking(booking.id, order_id=order_id)

    def update_booking(self, booking_id: int, data: BookingInput) -> BookingInfo:
        """Replace the writable fields of a booking."""
        if not data.booking_reference or not str(data.booking_reference).strip():
            raise MissingFieldError(["bookingreference"])
        with unit_of_work(self.session, commit=self.auto_commit):
            booking = self.session.get(Booking, booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            self._apply(booking, data)

        logger.info(
            "booking_updated",
            extra={"booking_id": booking_id, "status_code": booking.status},
        )
        return self.get_booking(booking_id)

    def link_to_order(
        self,
        booking_id: int,
        order_id: int,
        booked_qty: Decimal | int = 1,
    ) -> BookingInfo:
        """
        Link an existing booking to an order.

        Raises:
            BookingNotFoundError, OrderNotFoundError,
            BookingLinkExistsError: the pair is already linked.
        """
        try:
            with unit_of_work(self.session, commit=self.auto_commit):
                if self.session.get(Booking, booking_id) is None:
                    raise BookingNotFoundError(booking_id)
                self._link(booking_id, order_id, booked_qty)
        except IntegrityError as exc:
            raise BookingLinkExistsError(booking_id, order_id) from exc
        return self.get_booking(booking_id, order_id=order_id)

    def _link(self, booking_id: int, order_id: int, booked_qty: Decimal | int) -> None:
        if self.session.get(Order, order_id) is None:
            raise OrderNotFoundError(order_id)
        existing = self.session.scalars(
            select(BookingOrderLink).where(
                BookingOrderLink.booking_id == booking_id,
                BookingOrderLink.order_id == order_id,
            )
        ).first()
        if existing is not None:
            raise BookingLinkExistsError(booking_id, order_id)
        self.session.add(
            BookingOrderLink(
                booking_id=booking_id,
                order_id=order_id,
                booked_qty=Decimal(str(booked_qty or 1)),
            )
        )
        self.session.flush()

    def get_booking(self, booking_id: int, order_id: int | None = None) -> BookingInfo:
        booking = self.session.get(Booking, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        link = None
        if order_id is not None:
            link = self.session.scalars(
                select(BookingOrderLink).where(
                    BookingOrderLink.booking_id == booking_id,
                    BookingOrderLink.order_id == order_id,
                )
            ).first()
        return self._to_info(booking, link)

    def list_bookings(self, order_id: int | None = None) -> list[BookingInfo]:
        """
        All bookings, newest booking date first.

        With ``order_id``, every booking is still returned; ``is_linked`` and
        ``booked_qty`` describe its link to that order.
        """
        bookings = self.session.scalars(
            select(Booking).order_by(
                Booking.booking_date.desc().nulls_last(),
                Booking.id.desc(),
            )
        ).all()

        links: dict[int, BookingOrderLink] = {}
        if order_id is not None:
            links = {
                link.booking_id: link
                for link in self.session.scalars(
                    select(BookingOrderLink).where(BookingOrderLink.order_id == order_id)
                )
            }
        return [self._to_info(b, links.get(b.id)) for b in bookings]

    @staticmethod
    def _to_info(booking: Booking, link: BookingOrderLink | None) -> BookingInfo:
        return BookingInfo(
            id=booking.id,
            booking_reference=booking.booking_reference,
            booking_date=booking.booking_date,
            load_type=booking.load_type,
            transport_detail_1=booking.transport_detail_1,
            transport_detail_2=booking.transport_detail_2,
            master_number=booking.master_number,
            house_number=booking.house_number,
            first_vessel=booking.first_vessel,
            vessel_call_sign=booking.vessel_call_sign,
            port_of_loading=booking.port_of_loading,
            destination=booking.destination,
            estimated_arrival=booking.estimated_arrival,
            estimated_pickup=booking.estimated_pickup,
            ship_carrier=booking.ship_carrier,
            status_code=booking.status,
            status=to_label(booking.status),
            is_linked=link is not None,
            booked_qty=link.booked_qty if link is not None else Decimal("0"),
        )
