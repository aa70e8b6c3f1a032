"""Order communication thread endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from trade_api.deps import get_session
from trade_api.schemas import CommunicationIn
from trade_kernel.exceptions import MissingFieldError
from trade_kernel.services.communication_service import (
    CommunicationInfo,
    CommunicationService,
)

router = APIRouter(prefix="/api/communications", tags=["communications"])


def communication_to_wire(info: CommunicationInfo) -> dict:
    return {
        "communicationid": info.id,
        "orderid": info.order_id,
        "userid": info.user_id,
        "messagetype": info.message_type,
        "subject": info.subject,
        "messagebody": info.body,
        "priority": info.priority,
        "isread": info.is_read,
        "createdat": info.created_at.isoformat() if info.created_at else None,
    }


@router.get("")
def list_communications(orderid: int | None = None, session: Session = Depends(get_session)):
    if orderid is None:
        raise MissingFieldError(["orderid"])
    service = CommunicationService(session)
    return [communication_to_wire(c) for c in service.list_for_order(orderid)]


@router.post("")
def post_communication(body: CommunicationIn, session: Session = Depends(get_session)):
    info = CommunicationService(session).post_message(
        order_id=body.orderid,
        user_id=body.userid,
        message_type=body.messagetype,
        body=body.messagebody,
        subject=body.subject,
        priority=body.priority,
    )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Message sent successfully",
            "CommunicationID": info.id,
        },
    )
