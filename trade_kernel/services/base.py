"""
BaseService -- shared constructor for kernel services.

A service is handed an open ``Session`` by its caller and wraps each write
in one ``unit_of_work``.  With ``auto_commit=False`` the write is only
flushed and the caller decides when to commit, so a request handler can
run several services in one transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from trade_kernel.db.base import Base
from trade_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Parameterized by the model the service primarily writes."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.auto_commit = auto_commit
