"""
Pytest fixtures for the trade kernel test suite.

Provides:
- Database sessions isolated per test (outer transaction rolled back)
- Order factories, a deterministic clock and an attestation codec
- Captured structured logs

Environment Variables:
- DATABASE_URL: connection URL for the test database.  Defaults to an
  in-memory SQLite database; set a postgresql:// URL to run the suite
  against PostgreSQL.
"""

import json
import logging
import os
from collections.abc import Callable, Generator
from io import StringIO

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from trade_kernel.db.base import Base
from trade_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from trade_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from trade_kernel.domain.attestation import AttestationCodec
from trade_kernel.domain.clock import DeterministicClock
from trade_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from trade_kernel.models.communication import Communication
from trade_kernel.models.milestone import Milestone
from trade_kernel.models.order import Order, OrderInvoice
from trade_kernel.services.milestone_engine import MilestoneEngine

# Test-only signing secret (64 hex chars); never used outside the suite
TEST_SECRET = "3f1c9a7e5b2d4c6f8a0e1d3b5c7a9e2f4d6b8a0c2e4f6a8b0d2c4e6f8a1b3c5d"

TEST_USER_ID = 7

DEFAULT_TEST_URL = "sqlite://"


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_TEST_URL)


def is_postgres_url(url: str) -> bool:
    return url.startswith("postgresql")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture trade_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, milestone_engine):
            milestone_engine.confirm_order(order.id, 7)
            logs = captured_logs()
            assert any(r["message"] == "milestone_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("trade_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(
        get_database_url(), echo=False,
        pool_size=10, max_overflow=10, pool_timeout=10,
    )
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end.

    Immutability listeners are registered once and remain active.
    """
    drop_tables()
    create_tables()
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables()


def truncate_all_tables(engine) -> None:
    """Delete all rows.  Used by tests that perform real commits."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def db_connection(db_tables, db_engine):
    """Connection holding the outer transaction of one test."""
    conn = db_engine.connect()
    trans = conn.begin()
    yield conn
    try:
        trans.rollback()
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session_factory(db_connection) -> Callable[[], Session]:
    """Sessions that join the test's outer transaction.

    ``session.commit()`` releases a savepoint; nothing reaches the database
    beyond the test.
    """

    def _factory() -> Session:
        return Session(
            bind=db_connection,
            join_transaction_mode="create_savepoint",
            expire_on_commit=False,
        )

    return _factory


@pytest.fixture(scope="function")
def session(session_factory) -> Generator[Session, None, None]:
    """Provide a database session for testing."""
    sess = session_factory()
    yield sess
    sess.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def codec() -> AttestationCodec:
    return AttestationCodec(TEST_SECRET)


@pytest.fixture
def milestone_engine(session, clock) -> MilestoneEngine:
    return MilestoneEngine(session, clock=clock)


@pytest.fixture
def make_order(session):
    """
    Factory for committed orders with ``invoice_count`` invoices.

    Seed data is committed so that a rolled-back milestone action cannot
    take it with it.
    """

    def _make(invoice_count: int = 2, order_number: str | None = None) -> Order:
        order = Order(order_number=order_number, user_id=TEST_USER_ID)
        session.add(order)
        session.flush()
        for i in range(invoice_count):
            session.add(OrderInvoice(order_id=order.id, invoice_number=f"INV-{order.id}-{i + 1}"))
        session.commit()
        return order

    return _make


@pytest.fixture
def row_counts(session):
    """Snapshot of row counts across the tables a milestone action touches."""

    def _counts() -> dict[str, int]:
        return {
            model.__tablename__: session.scalar(select(func.count()).select_from(model))
            for model in (Order, OrderInvoice, Milestone, Communication)
        }

    return _counts


@pytest.fixture(scope="session")
def sqlite_url_for(tmp_path_factory):
    """File-backed SQLite URL, for tests that need several real connections."""

    def _url(name: str) -> str:
        return f"sqlite:///{tmp_path_factory.mktemp(name) / 'trade.db'}"

    return _url


__all__ = ["TEST_SECRET", "TEST_USER_ID", "get_database_url", "is_postgres_url", "text"]
