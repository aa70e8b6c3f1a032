"""
Module: trade_kernel.db.engine
Responsibility: build the SQLAlchemy engine, hold the process-wide session
    factory, and define the unit-of-work scope every service writes through.
Architecture position: Kernel > DB.  Imports models only inside
    create_tables/drop_tables.

Invariants enforced:
    - Milestone actions read the completed set and then insert.  That pair
      must not interleave with a concurrent writer on the same order, so:
      PostgreSQL connections run at SERIALIZABLE, and SQLite connections
      open every transaction with BEGIN IMMEDIATE (one writer at a time).
    - SQLite enforces foreign keys.
    - unit_of_work() is the only place a service commits or rolls back.  Any
      exception inside the scope rolls back that scope (the whole
      transaction, or only its SAVEPOINT when the caller owns the
      transaction) and re-raises.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from trade_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_READY = "Engine not initialized. Call init_engine_from_url() first."


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create an engine for ``database_url`` without touching module state.

    Pool arguments apply to PostgreSQL only.  For SQLite ``pool_timeout`` is
    the busy timeout a blocked writer waits before failing.
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="SERIALIZABLE",
        )

    in_memory = url.database in (None, "", ":memory:")
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": pool_timeout},
        # An in-memory database exists per connection; share the one connection
        poolclass=StaticPool if in_memory else None,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy so SAVEPOINT works
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_engine_from_url(database_url: str, **engine_options) -> Engine:
    """
    Build the process-wide engine and session factory.

    A second call replaces the first.  Options are those of build_engine().
    Sessions from the factory keep loaded attributes after commit, so an
    outcome returned by a service stays readable once its transaction ends.
    """
    global _engine, _SessionFactory

    _engine = build_engine(database_url, **engine_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool_size": engine_options.get("pool_size", 20),
            "max_overflow": engine_options.get("max_overflow", 10),
        },
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for per-request (or per-thread) sessions."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_READY)
    return _SessionFactory


@contextmanager
def unit_of_work(session: Session, commit: bool = True) -> Iterator[Session]:
    """
    Run one atomic unit of work on ``session``.

    With ``commit=True`` the session is committed on normal exit and rolled
    back on any exception.  With ``commit=False`` the caller owns the outer
    transaction: the scope runs inside a SAVEPOINT that is released on
    success and rolled back on failure, so work the caller flushed earlier
    survives.  Either way the exception propagates unchanged and a
    milestone row never survives without its status updates and message.

        with unit_of_work(session):
            session.add(milestone)
            session.add(communication)
    """
    if commit:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            logger.warning("unit_of_work_rolled_back", exc_info=True)
            raise
        return

    savepoint = session.begin_nested()
    try:
        yield session
        savepoint.commit()
    except Exception:
        savepoint.rollback()
        logger.warning("unit_of_work_savepoint_rolled_back", exc_info=True)
        raise


def create_tables() -> None:
    from trade_kernel.db.base import Base
    import trade_kernel.models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every table. Tests only."""
    from trade_kernel.db.base import Base
    import trade_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
