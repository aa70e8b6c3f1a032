"""
MilestoneEngine -- guarded, atomic progression of shipment milestones.

Responsibility:
    Records the completion of one lifecycle milestone for an order and, in
    the same transaction, cascades its effects:

        1. milestone row           status=completed, completed_date, completed_by
        2. every invoice           expected_stock_status per the rule (if any)
        3. the order               order_status per the rule (if any)
        4. one communication       message_type="milestone_update"

    All four commit together or none do.  The decision whether a type may
    be completed is taken by ``domain.milestones.check_transition``; this
    service only loads state, applies the rule and owns the transaction.

Architecture position:
    Kernel > Services -- imperative shell around the pure transition table.

Invariants enforced:
    - Prefix invariant: completed chain types of an order always form a
      contiguous prefix of MILESTONE_CHAIN.  Both the guarded actions and
      the manual status path go through check_transition.
    - No duplicates: the order row is locked (SELECT ... FOR UPDATE) before
      the check-then-act pair; uq_milestone_order_type is the backstop and
      its violation surfaces as MilestoneAlreadyCompletedError.
    - Forward only: nothing here moves a completed milestone back.

Failure modes:
    - OrderNotFoundError: unknown order id.  No writes.
    - MilestoneAlreadyCompletedError: type already completed.  No writes.
    - MilestonePredecessorMissingError: predecessor not completed.  No writes.
    - ConcurrentModificationError: PostgreSQL serialization failure (40001).
    - A failing listener is logged and never undoes a committed transition.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from trade_kernel.db.engine import unit_of_work
from trade_kernel.domain.clock import Clock
from trade_kernel.domain.milestones import (
    MILESTONE_CHAIN,
    MILESTONE_UPDATE,
    MilestonePriority,
    MilestoneRule,
    MilestoneStatus,
    MilestoneType,
    as_chain_type,
    check_transition,
    coerce_milestone_status,
    coerce_milestone_type,
    is_contiguous_prefix,
    next_milestone,
    rule_for,
    rule_for_action,
)
from trade_kernel.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    MilestoneAlreadyCompletedError,
    MilestoneExistsError,
    MilestoneNotFoundError,
    MilestoneRegressionError,
    MissingFieldError,
    NotFoundError,
    OrderNotFoundError,
    PreconditionError,
    StorageIntegrityError,
    UnknownMilestoneActionError,
    ValidationError,
)
from trade_kernel.logging_config import LogContext, get_logger
from trade_kernel.models.communication import Communication
from trade_kernel.models.milestone import Milestone
from trade_kernel.models.order import Order, OrderInvoice
from trade_kernel.services.base import BaseService

logger = get_logger("services.milestone_engine")

SERIALIZATION_FAILURE = "40001"


@dataclass(frozen=True)
class MilestoneOutcome:
    """Result of one committed milestone transition."""

    order_id: int
    milestone_id: int
    milestone_type: MilestoneType
    user_id: int
    completed_at: datetime
    communication_id: int
    invoices_updated: int
    invoice_status: str | None
    order_status: str | None
    message: str


@dataclass(frozen=True)
class MilestoneInfo:
    """
    Immutable DTO for one milestone row.

    ``milestone_type`` is a plain string: chain milestones carry a
    MilestoneType value, manual ones may carry any label.
    """

    id: int
    order_id: int
    user_id: int
    milestone_type: str
    status: str
    title: str
    description: str | None
    due_date: datetime | None
    completed_date: datetime | None
    completed_by_user_id: int | None
    priority: str
    is_visible: bool
    created_at: datetime | None

    @property
    def is_completed(self) -> bool:
        return self.status == MilestoneStatus.COMPLETED


@dataclass(frozen=True)
class MilestoneProgress:
    """Where an order stands on the milestone chain."""

    order_id: int
    completed: tuple[MilestoneType, ...]
    next_milestone: MilestoneType | None

    @property
    def is_terminal(self) -> bool:
        return self.next_milestone is None

    @property
    def is_consistent(self) -> bool:
        return is_contiguous_prefix(self.completed)


MilestoneListener = Callable[[MilestoneOutcome], None]


def _completed_chain_types(rows: Iterable[Milestone]) -> tuple[MilestoneType, ...]:
    completed = {
        as_chain_type(row.milestone_type)
        for row in rows
        if row.status == MilestoneStatus.COMPLETED
    }
    return tuple(t for t in MILESTONE_CHAIN if t in completed)


def _is_serialization_failure(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code == SERIALIZATION_FAILURE


class MilestoneEngine(BaseService[Milestone]):
    """
    Validates and records ordered milestone completion per order.

    Contract:
        One engine per session.  With ``auto_commit=True`` every write
        operation commits on success and rolls back on failure, and
        listeners run after the commit.  With ``auto_commit=False`` the
        caller commits and then calls ``notify_listeners(outcome)``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
        listeners: Sequence[MilestoneListener] = (),
    ):
        super().__init__(session, clock=clock, auto_commit=auto_commit)
        self._listeners: list[MilestoneListener] = list(listeners)

    def add_listener(self, listener: MilestoneListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Guarded actions
    # ------------------------------------------------------------------

    def record_milestone(
        self,
        order_id: int,
        milestone_type: MilestoneType | str,
        user_id: int,
    ) -> MilestoneOutcome:
        """
        Complete ``milestone_type`` for ``order_id`` and apply its cascade.

        Preconditions:
            - The order exists.
            - The type is not yet completed and its predecessor is.

        Postconditions:
            - Exactly one completed row exists for (order_id, type).
            - Invoice, order and communication effects of the rule are
              persisted in the same transaction.

        Raises:
            OrderNotFoundError, MilestoneAlreadyCompletedError,
            MilestonePredecessorMissingError, ConcurrentModificationError.
        """
        if order_id is None or user_id is None:
            raise MissingFieldError(
                [name for name, v in (("orderid", order_id), ("userid", user_id)) if v is None]
            )
        rule = rule_for(coerce_milestone_type(milestone_type))

        with LogContext.bind(
            correlation_id=LogContext.get_all().get("correlation_id") or str(uuid4()),
            order_id=str(order_id),
            actor_id=str(user_id),
            action=rule.action,
        ):
            logger.info(
                "milestone_requested",
                extra={"milestone_type": rule.milestone_type.value},
            )
            t0 = time.monotonic()

            try:
                with unit_of_work(self.session, commit=self.auto_commit):
                    outcome = self._apply_transition(order_id, rule, user_id)
            except PreconditionError as exc:
                logger.warning(
                    "milestone_precondition_failed",
                    extra={
                        "milestone_type": rule.milestone_type.value,
                        "missing_predecessor": getattr(exc, "predecessor", None),
                    },
                )
                raise
            except (ConflictError, NotFoundError) as exc:
                logger.warning(
                    "milestone_rejected",
                    extra={"milestone_type": rule.milestone_type.value, "reason": exc.code},
                )
                raise
            except IntegrityError as exc:
                raise self._translate_integrity_error(
                    order_id, rule.milestone_type.value, exc
                ) from exc
            except DBAPIError as exc:
                if _is_serialization_failure(exc):
                    logger.warning(
                        "milestone_serialization_failure",
                        extra={"milestone_type": rule.milestone_type.value},
                    )
                    raise ConcurrentModificationError(order_id) from exc
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "milestone_recorded",
                extra={
                    "milestone_type": rule.milestone_type.value,
                    "milestone_id": outcome.milestone_id,
                    "invoices_updated": outcome.invoices_updated,
                    "order_status": outcome.order_status,
                    "duration_ms": duration_ms,
                },
            )

        if self.auto_commit:
            self.notify_listeners(outcome)
        return outcome

    def confirm_order(self, order_id: int, user_id: int) -> MilestoneOutcome:
        return self.record_milestone(order_id, MilestoneType.ORDER_CONFIRMED, user_id)

    def ready_to_ship(self, order_id: int, user_id: int) -> MilestoneOutcome:
        return self.record_milestone(order_id, MilestoneType.READY_TO_SHIP, user_id)

    def goods_shipped(self, order_id: int, user_id: int) -> MilestoneOutcome:
        return self.record_milestone(order_id, MilestoneType.GOODS_SHIPPED, user_id)

    def goods_arrived(self, order_id: int, user_id: int) -> MilestoneOutcome:
        return self.record_milestone(order_id, MilestoneType.GOODS_ARRIVED, user_id)

    def goods_received(self, order_id: int, user_id: int) -> MilestoneOutcome:
        return self.record_milestone(order_id, MilestoneType.GOODS_RECEIVED, user_id)

    def perform_action(self, action: str, order_id: int, user_id: int) -> MilestoneOutcome:
        """Dispatch a wire action slug such as ``"goods-shipped"``."""
        rule = rule_for_action(action)
        if rule is None:
            raise UnknownMilestoneActionError(action)
        return self.record_milestone(order_id, rule.milestone_type, user_id)

    def notify_listeners(self, outcome: MilestoneOutcome) -> None:
        """Run downstream hooks for a committed transition."""
        for listener in self._listeners:
            try:
                listener(outcome)
            except Exception:
                logger.error(
                    "milestone_listener_failed",
                    extra={
                        "listener": getattr(listener, "__qualname__", repr(listener)),
                        "milestone_id": outcome.milestone_id,
                    },
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_milestones(self, order_id: int) -> list[MilestoneInfo]:
        """Visible milestones of an order, oldest first."""
        rows = self.session.scalars(
            select(Milestone)
            .where(Milestone.order_id == order_id, Milestone.is_visible.is_(True))
            .order_by(Milestone.created_at, Milestone.id)
        ).all()
        return [self._to_info(row) for row in rows]

    def get_milestone(self, milestone_id: int) -> MilestoneInfo:
        row = self.session.get(Milestone, milestone_id)
        if row is None:
            raise MilestoneNotFoundError(milestone_id)
        return self._to_info(row)

    def completed_types(self, order_id: int) -> tuple[MilestoneType, ...]:
        """Completed chain types of an order, in chain order."""
        return _completed_chain_types(self._milestone_rows(order_id))

    def progress(self, order_id: int) -> MilestoneProgress:
        completed = self.completed_types(order_id)
        return MilestoneProgress(
            order_id=order_id,
            completed=completed,
            next_milestone=next_milestone(completed),
        )

    # ------------------------------------------------------------------
    # Manual path
    # ------------------------------------------------------------------

    def create_manual_milestone(
        self,
        order_id: int,
        user_id: int,
        milestone_type: str,
        title: str,
        description: str | None = None,
        due_date: datetime | None = None,
        priority: MilestonePriority | str = MilestonePriority.MEDIUM,
    ) -> MilestoneInfo:
        """
        Add a pending milestone entered by hand.

        The row starts ``pending``; completing it later goes through
        ``update_milestone_status`` (or, for a chain type, the guarded
        action, which completes the existing row).

        Raises:
            MissingFieldError: orderid, userid, milestonetype or title absent.
            MilestoneExistsError: the order already has a row of this type.
        """
        missing = [
            name
            for name, value in (
                ("orderid", order_id),
                ("userid", user_id),
                ("milestonetype", milestone_type),
                ("title", title),
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise MissingFieldError(missing)
        try:
            priority_value = MilestonePriority(priority or MilestonePriority.MEDIUM).value
        except ValueError:
            raise ValidationError(f"Unknown milestone priority: {priority!r}") from None
        type_value = milestone_type.strip()

        with LogContext.bind(order_id=str(order_id), actor_id=str(user_id)):
            try:
                with unit_of_work(self.session, commit=self.auto_commit):
                    self._lock_order(order_id)
                    if any(r.milestone_type == type_value for r in self._milestone_rows(order_id)):
                        raise MilestoneExistsError(order_id, type_value)
                    row = Milestone(
                        order_id=order_id,
                        user_id=user_id,
                        milestone_type=type_value,
                        status=MilestoneStatus.PENDING.value,
                        title=title.strip(),
                        description=description,
                        due_date=due_date,
                        priority=priority_value,
                        is_visible=True,
                        created_at=self.clock.now(),
                    )
                    self.session.add(row)
            except IntegrityError as exc:
                raise MilestoneExistsError(order_id, type_value) from exc

            logger.info(
                "manual_milestone_created",
                extra={"milestone_id": row.id, "milestone_type": type_value},
            )
        return self._to_info(row)

    def update_milestone_status(
        self,
        milestone_id: int,
        status: MilestoneStatus | str,
        user_id: int | None = None,
    ) -> MilestoneInfo:
        """
        Change the status of an existing milestone.

        Completing a chain milestone is re-validated against the prefix
        invariant; its predecessor must already be completed.  A completed
        milestone never moves back.  This path does not cascade to
        invoices, the order or communications.

        Raises:
            InvalidMilestoneStatusError, MilestoneNotFoundError,
            MilestoneRegressionError, MilestoneAlreadyCompletedError,
            MilestonePredecessorMissingError.
        """
        new_status = coerce_milestone_status(status)
        row = self.session.get(Milestone, milestone_id)
        if row is None:
            raise MilestoneNotFoundError(milestone_id)
        order_id = row.order_id

        with LogContext.bind(order_id=str(order_id), actor_id=str(user_id) if user_id else None):
            with unit_of_work(self.session, commit=self.auto_commit):
                self._lock_order(order_id)
                self.session.refresh(row)

                if row.status == MilestoneStatus.COMPLETED:
                    if new_status != MilestoneStatus.COMPLETED:
                        raise MilestoneRegressionError(milestone_id, new_status.value)
                    raise MilestoneAlreadyCompletedError(order_id, row.milestone_type)

                if new_status == MilestoneStatus.COMPLETED:
                    chain_type = as_chain_type(row.milestone_type)
                    if chain_type is not None:
                        check_transition(
                            order_id,
                            self.completed_types(order_id),
                            chain_type,
                        )
                    row.completed_date = self.clock.now()
                    row.completed_by_user_id = user_id
                else:
                    row.completed_date = None
                    row.completed_by_user_id = None
                row.status = new_status.value

            logger.info(
                "milestone_status_updated",
                extra={"milestone_id": milestone_id, "status": new_status.value},
            )
        return self._to_info(row)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_order(self, order_id: int) -> Order:
        order = self.session.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _milestone_rows(self, order_id: int) -> list[Milestone]:
        return list(
            self.session.scalars(
                select(Milestone)
                .where(Milestone.order_id == order_id)
                .execution_options(populate_existing=True)
            ).all()
        )

    def _apply_transition(
        self,
        order_id: int,
        rule: MilestoneRule,
        user_id: int,
    ) -> MilestoneOutcome:
        order = self._lock_order(order_id)
        rows = self._milestone_rows(order_id)

        # INVARIANT: prefix -- the only gate through which a type completes
        check_transition(order_id, _completed_chain_types(rows), rule.milestone_type)

        now = self.clock.now()
        milestone = next(
            (r for r in rows if r.milestone_type == rule.milestone_type.value),
            None,
        )
        if milestone is None:
            milestone = Milestone(
                order_id=order_id,
                user_id=user_id,
                milestone_type=rule.milestone_type.value,
                title=rule.title,
                description=rule.description,
                priority=MilestonePriority.MEDIUM.value,
                is_visible=True,
                created_at=now,
            )
            self.session.add(milestone)
        milestone.status = MilestoneStatus.COMPLETED.value
        milestone.completed_date = now
        milestone.completed_by_user_id = user_id

        invoices_updated = 0
        if rule.invoice_status is not None:
            invoices = self.session.scalars(
                select(OrderInvoice).where(OrderInvoice.order_id == order_id)
            ).all()
            for invoice in invoices:
                invoice.expected_stock_status = rule.invoice_status.value
            invoices_updated = len(invoices)

        if rule.order_status is not None:
            order.order_status = rule.order_status.value

        communication = Communication(
            order_id=order_id,
            user_id=user_id,
            message_type=MILESTONE_UPDATE,
            subject=rule.subject,
            body=rule.body,
            priority="normal",
            created_at=now,
        )
        self.session.add(communication)
        self.session.flush()

        return MilestoneOutcome(
            order_id=order_id,
            milestone_id=milestone.id,
            milestone_type=rule.milestone_type,
            user_id=user_id,
            completed_at=now,
            communication_id=communication.id,
            invoices_updated=invoices_updated,
            invoice_status=rule.invoice_status.value if rule.invoice_status else None,
            order_status=order.order_status,
            message=rule.success_message,
        )

    def _translate_integrity_error(
        self,
        order_id: int,
        milestone_type: str,
        exc: IntegrityError,
    ) -> Exception:
        # The transaction is already rolled back; re-read what won the race.
        existing = [r for r in self._milestone_rows(order_id) if r.milestone_type == milestone_type]
        if existing and existing[0].status == MilestoneStatus.COMPLETED:
            logger.warning(
                "milestone_duplicate_rejected",
                extra={"milestone_type": milestone_type},
            )
            return MilestoneAlreadyCompletedError(order_id, milestone_type)
        if existing:
            return MilestoneExistsError(order_id, milestone_type)
        logger.error(
            "milestone_integrity_error",
            extra={"milestone_type": milestone_type},
            exc_info=exc,
        )
        return StorageIntegrityError("record_milestone", str(exc.orig))

    @staticmethod
    def _to_info(row: Milestone) -> MilestoneInfo:
        return MilestoneInfo(
            id=row.id,
            order_id=row.order_id,
            user_id=row.user_id,
            milestone_type=row.milestone_type,
            status=row.status,
            title=row.title,
            description=row.description,
            due_date=row.due_date,
            completed_date=row.completed_date,
            completed_by_user_id=row.completed_by_user_id,
            priority=row.priority,
            is_visible=row.is_visible,
            created_at=row.created_at,
        )
