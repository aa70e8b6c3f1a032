"""
Service layer for the per-order communication thread.

Communications are append-only: this service only ever inserts and reads.
Returns CommunicationInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select

from trade_kernel.db.engine import unit_of_work
from trade_kernel.exceptions import MissingFieldError, OrderNotFoundError
from trade_kernel.logging_config import LogContext, get_logger
from trade_kernel.models.communication import Communication
from trade_kernel.models.order import Order
from trade_kernel.services.base import BaseService

logger = get_logger("services.communication")


@dataclass(frozen=True)
class CommunicationInfo:
    id: int
    order_id: int
    user_id: int
    message_type: str
    subject: str | None
    body: str | None
    priority: str
    is_read: bool
    created_at: datetime | None


class CommunicationService(BaseService[Communication]):
    """Reads and appends messages on an order's thread."""

    def list_for_order(self, order_id: int) -> list[CommunicationInfo]:
        """All messages of an order, oldest first."""
        if order_id is None:
            raise MissingFieldError(["orderid"])
        rows = self.session.scalars(
            select(Communication)
            .where(Communication.order_id == order_id)
            .order_by(Communication.created_at, Communication.id)
        ).all()
        return [self._to_info(row) for row in rows]

    def post_message(
        self,
        order_id: int,
        user_id: int,
        message_type: str,
        body: str,
        subject: str | None = None,
        priority: str = "normal",
    ) -> CommunicationInfo:
        """
        Append one message to an order's thread.

        Raises:
            MissingFieldError: orderid, userid, messagetype or messagebody
                is absent.
            OrderNotFoundError: the order does not exist.
        """
        missing = [
            name
            for name, value in (
                ("orderid", order_id),
                ("userid", user_id),
                ("messagetype", message_type),
                ("messagebody", body),
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise MissingFieldError(missing)

        with LogContext.bind(order_id=str(order_id), actor_id=str(user_id)):
            with unit_of_work(self.session, commit=self.auto_commit):
                if self.session.get(Order, order_id) is None:
                    raise OrderNotFoundError(order_id)
                row = Communication(
                    order_id=order_id,
                    user_id=user_id,
                    message_type=message_type,
                    subject=subject or None,
                    body=body,
                    priority=priority or "normal",
                    created_at=self.clock.now(),
                )
                self.session.add(row)

            logger.info(
                "communication_posted",
                extra={"communication_id": row.id, "message_type": message_type},
            )
        return self._to_info(row)

    @staticmethod
    def _to_info(row: Communication) -> CommunicationInfo:
        return CommunicationInfo(
            id=row.id,
            order_id=row.order_id,
            user_id=row.user_id,
            message_type=row.message_type,
            subject=row.subject,
            body=row.body,
            priority=row.priority,
            is_read=row.is_read,
            created_at=row.created_at,
        )
