"""
Concurrent milestone actions on one order.

Two callers race to complete the same milestone.  Exactly one wins; the
other is told the milestone is already completed, and exactly one row
exists afterwards.

Runs against a file-backed SQLite database by default (writers serialize
on BEGIN IMMEDIATE).  With DATABASE_URL pointing at PostgreSQL the same
test exercises SELECT ... FOR UPDATE under SERIALIZABLE isolation.
"""

import threading

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from trade_kernel.db.base import Base
from trade_kernel.db.engine import build_engine
from trade_kernel.domain.clock import DeterministicClock
from trade_kernel.exceptions import (
    ConcurrentModificationError,
    MilestoneAlreadyCompletedError,
)
from trade_kernel.models.communication import Communication
from trade_kernel.models.milestone import Milestone
from trade_kernel.models.order import Order, OrderInvoice
from trade_kernel.services.milestone_engine import MilestoneEngine

from tests.conftest import get_database_url, is_postgres_url, truncate_all_tables

pytestmark = [pytest.mark.slow_locks]

THREADS = 2


@pytest.fixture
def race_engine(sqlite_url_for):
    url = get_database_url()
    if not is_postgres_url(url):
        url = sqlite_url_for("milestone_race")
    engine = build_engine(url, pool_size=THREADS + 1, pool_timeout=30)
    import trade_kernel.models  # noqa: F401

    Base.metadata.create_all(engine)
    yield engine
    truncate_all_tables(engine)
    engine.dispose()


@pytest.fixture
def race_session_factory(race_engine):
    return sessionmaker(bind=race_engine, expire_on_commit=False)


def _seed_order(factory) -> int:
    with factory() as session:
        order = Order(order_number="PO-RACE")
        session.add(order)
        session.flush()
        session.add_all([OrderInvoice(order_id=order.id), OrderInvoice(order_id=order.id)])
        session.commit()
        return order.id


def _race(factory, action: str, order_id: int) -> list[object]:
    """Run ``action`` from THREADS sessions released at the same instant."""
    barrier = threading.Barrier(THREADS)
    results: list[object] = [None] * THREADS

    def worker(index: int):
        with factory() as session:
            engine = MilestoneEngine(session, clock=DeterministicClock())
            barrier.wait()
            try:
                results[index] = engine.perform_action(action, order_id, 7)
            except (MilestoneAlreadyCompletedError, ConcurrentModificationError) as exc:
                results[index] = exc

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


class TestMilestoneRace:

    def test_one_winner_one_conflict(self, race_session_factory):
        order_id = _seed_order(race_session_factory)

        results = _race(race_session_factory, "confirm-order", order_id)

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        # PostgreSQL may report the loser as a serialization failure instead.
        assert isinstance(losers[0], (MilestoneAlreadyCompletedError, ConcurrentModificationError))

        with race_session_factory() as session:
            rows = session.scalar(
                select(func.count()).select_from(Milestone).where(Milestone.order_id == order_id)
            )
            messages = session.scalar(
                select(func.count()).select_from(Communication).where(Communication.order_id == order_id)
            )
            assert rows == 1
            assert messages == 1
            assert session.get(Order, order_id).order_status == "Confirmed"

    def test_race_on_later_link(self, race_session_factory):
        order_id = _seed_order(race_session_factory)
        with race_session_factory() as session:
            MilestoneEngine(session).confirm_order(order_id, 7)

        results = _race(race_session_factory, "ready-to-ship", order_id)

        assert sum(not isinstance(r, Exception) for r in results) == 1
        with race_session_factory() as session:
            statuses = session.scalars(
                select(OrderInvoice.expected_stock_status).where(OrderInvoice.order_id == order_id)
            ).all()
            assert statuses == ["confirmed", "confirmed"]
