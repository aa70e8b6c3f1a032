"""Milestone endpoints: guarded actions, listing, progress and the manual path."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from trade_api.deps import get_clock, get_session
from trade_api.schemas import ManualMilestoneIn, MilestoneActionIn, MilestoneStatusIn
from trade_kernel.domain.clock import Clock
from trade_kernel.exceptions import MissingFieldError
from trade_kernel.services.milestone_engine import MilestoneEngine, MilestoneInfo

router = APIRouter(prefix="/api/milestones", tags=["milestones"])


def _engine(request: Request, session: Session, clock: Clock) -> MilestoneEngine:
    return MilestoneEngine(
        session,
        clock=clock,
        listeners=request.app.state.milestone_listeners,
    )


def milestone_to_wire(info: MilestoneInfo) -> dict:
    return {
        "milestoneid": info.id,
        "orderid": info.order_id,
        "userid": info.user_id,
        "milestonetype": info.milestone_type,
        "status": info.status,
        "title": info.title,
        "description": info.description,
        "duedate": info.due_date.isoformat() if info.due_date else None,
        "completeddate": info.completed_date.isoformat() if info.completed_date else None,
        "completedbyuserid": info.completed_by_user_id,
        "priority": info.priority,
        "isvisible": info.is_visible,
        "createdat": info.created_at.isoformat() if info.created_at else None,
    }


@router.get("")
def list_milestones(
    request: Request,
    orderid: int | None = None,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    if orderid is None:
        raise MissingFieldError(["orderid"])
    engine = _engine(request, session, clock)
    return [milestone_to_wire(m) for m in engine.list_milestones(orderid)]


@router.get("/progress")
def milestone_progress(
    request: Request,
    orderid: int | None = None,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    if orderid is None:
        raise MissingFieldError(["orderid"])
    progress = _engine(request, session, clock).progress(orderid)
    return {
        "orderid": orderid,
        "completed": [t.value for t in progress.completed],
        "next": progress.next_milestone.value if progress.next_milestone else None,
        "isTerminal": progress.is_terminal,
    }


@router.post("")
def create_milestone(
    request: Request,
    body: ManualMilestoneIn,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    info = _engine(request, session, clock).create_manual_milestone(
        order_id=body.orderid,
        user_id=body.userid,
        milestone_type=body.milestonetype,
        title=body.title,
        description=body.description,
        due_date=body.duedate,
        priority=body.priority,
    )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Milestone created successfully",
            "MilestoneID": info.id,
        },
    )


@router.put("/{milestone_id}")
def update_milestone(
    request: Request,
    milestone_id: int,
    body: MilestoneStatusIn,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    if not body.status:
        raise MissingFieldError(["status"])
    info = _engine(request, session, clock).update_milestone_status(
        milestone_id,
        body.status,
        user_id=body.completedbyuserid,
    )
    return {
        "success": True,
        "message": "Milestone updated successfully",
        "milestone": milestone_to_wire(info),
    }


@router.post("/{action}")
def milestone_action(
    request: Request,
    action: str,
    body: MilestoneActionIn,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    missing = [name for name in ("orderid", "userid") if getattr(body, name) is None]
    if missing:
        raise MissingFieldError(missing)
    outcome = _engine(request, session, clock).perform_action(action, body.orderid, body.userid)
    return {
        "success": True,
        "message": outcome.message,
        "milestoneId": outcome.milestone_id,
    }
