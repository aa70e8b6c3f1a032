"""
Module: trade_kernel.db.base
Responsibility: declarative bases shared by every trade model.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    imports nothing from models/, services/ or domain/.

Invariants enforced:
    - Orders, invoices, milestones and communications are addressed by the
      integer ids the trading parties already exchange, generated by the
      database.
    - Quantities and amounts are Numeric(18, 4), never float.
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from trade_kernel.db.types import IdentityKey


class Base(DeclarativeBase):
    """Every model gets an integer identity ``id`` and the shared type map."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 4),
        datetime: DateTime(timezone=True),
        int: IdentityKey,
    }

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)


class TrackedBase(Base):
    """
    Adds ``created_at`` and ``updated_at``, server-stamped by default.

    Services stamp ``created_at`` on milestones and communications from
    their injected Clock, so listing order follows the same time source as
    completion dates.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
