"""Booking endpoints.  Status travels as a label, storage keeps the code."""

from decimal import Decimal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from trade_api.deps import get_session
from trade_api.schemas import BookingIn, BookingLinkIn
from trade_kernel.exceptions import MissingFieldError
from trade_kernel.services.booking_service import BookingInfo, BookingInput, BookingService

router = APIRouter(prefix="/api", tags=["bookings"])


def _service(request: Request, session: Session) -> BookingService:
    return BookingService(session, strict_status=request.app.state.strict_booking_status)


def _to_input(body: BookingIn) -> BookingInput:
    return BookingInput(
        booking_reference=body.bookingreference or "",
        booking_date=body.bookingdate,
        load_type=body.loadtype,
        transport_detail_1=body.tptdetail1,
        transport_detail_2=body.tptdetail2,
        master_number=body.masterno,
        house_number=body.houseno,
        first_vessel=body.firstvessel,
        vessel_call_sign=body.vesselcallsign,
        port_of_loading=body.portofloading,
        destination=body.destination,
        estimated_arrival=body.estimatedarrival,
        estimated_pickup=body.estimatedpickup,
        ship_carrier=body.shipcarrier,
        status=body.status,
    )


def _iso(value):
    return value.isoformat() if value else None


def booking_to_wire(info: BookingInfo) -> dict:
    return {
        "pobookingid": info.id,
        "bookingreference": info.booking_reference,
        "bookingdate": _iso(info.booking_date),
        "loadtype": info.load_type,
        "tptdetail1": info.transport_detail_1,
        "tptdetail2": info.transport_detail_2,
        "masterno": info.master_number,
        "houseno": info.house_number,
        "firstvessel": info.first_vessel,
        "vesselcallsign": info.vessel_call_sign,
        "portofloading": info.port_of_loading,
        "destination": info.destination,
        "estimatedarrival": _iso(info.estimated_arrival),
        "estimatedpickup": _iso(info.estimated_pickup),
        "shipcarrier": info.ship_carrier,
        "status": info.status_code,
        "Status": info.status,
        "islinked": 1 if info.is_linked else 0,
        "bookedqty": float(info.booked_qty),
    }


@router.get("/po-bookings")
def list_bookings(request: Request, orderid: int | None = None, session: Session = Depends(get_session)):
    return [booking_to_wire(b) for b in _service(request, session).list_bookings(order_id=orderid)]


@router.get("/po-bookings/{booking_id}")
def get_booking(request: Request, booking_id: int, session: Session = Depends(get_session)):
    return booking_to_wire(_service(request, session).get_booking(booking_id))


@router.post("/po-bookings")
def create_booking(request: Request, body: BookingIn, session: Session = Depends(get_session)):
    info = _service(request, session).create_booking(_to_input(body), order_id=body.orderid)
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Booking created successfully",
            "pobookingid": info.id,
        },
    )


@router.put("/po-bookings/{booking_id}")
def update_booking(
    request: Request,
    booking_id: int,
    body: BookingIn,
    session: Session = Depends(get_session),
):
    info = _service(request, session).update_booking(booking_id, _to_input(body))
    return {
        "success": True,
        "message": "Booking updated successfully",
        "booking": booking_to_wire(info),
    }


@router.post("/po-booking-links")
def link_booking(request: Request, body: BookingLinkIn, session: Session = Depends(get_session)):
    missing = [name for name in ("orderid", "pobookingid") if getattr(body, name) is None]
    if missing:
        raise MissingFieldError(missing)
    _service(request, session).link_to_order(
        body.pobookingid,
        body.orderid,
        booked_qty=Decimal(str(body.bookedqty)) if body.bookedqty else 1,
    )
    return JSONResponse(
        status_code=201,
        content={"success": True, "message": "Booking linked successfully"},
    )
