"""
FastAPI application factory.

``create_app()`` resolves configuration through ``trade_config`` (unless a
config is passed in), which fails fast on an unusable attestation secret,
then wires the session factory, codec and routers.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import uuid4

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session, sessionmaker

from trade_api.errors import install_error_handlers
from trade_api.routes import bookings, communications, milestones, packing_lists
from trade_config import TradeConfig, get_active_config
from trade_config.bridges import build_attestation_codec, init_kernel
from trade_kernel import __version__
from trade_kernel.db.engine import create_tables, get_session_factory
from trade_kernel.db.immutability import register_immutability_listeners
from trade_kernel.domain.clock import Clock, SystemClock
from trade_kernel.logging_config import LogContext, get_logger
from trade_kernel.services.milestone_engine import MilestoneListener

logger = get_logger("api.app")


def create_app(
    config: TradeConfig | None = None,
    session_factory: sessionmaker[Session] | None = None,
    clock: Clock | None = None,
    milestone_listeners: Sequence[MilestoneListener] = (),
    strict_booking_status: bool = False,
) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        config: Resolved configuration; loaded with get_active_config()
            when omitted.
        session_factory: Session factory to serve requests from.  When
            omitted the kernel engine is initialized from ``config`` and
            the schema is created.
        clock: Time source for services; system clock by default.
        milestone_listeners: Hooks run after each committed transition.
        strict_booking_status: Reject unknown booking status labels
            instead of storing Pending.

    Raises:
        SigningSecretError: the attestation secret is absent or unsafe.
    """
    config = config or get_active_config()
    codec = build_attestation_codec(config)

    if session_factory is None:
        init_kernel(config)
        create_tables()
        session_factory = get_session_factory()

    register_immutability_listeners()

    app = FastAPI(title="Trade Execution API", version=__version__)
    app.state.config = config
    app.state.session_factory = session_factory
    app.state.codec = codec
    app.state.clock = clock or SystemClock()
    app.state.milestone_listeners = tuple(milestone_listeners)
    app.state.strict_booking_status = strict_booking_status

    @app.middleware("http")
    async def bind_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("x-correlation-id") or str(uuid4())
        with LogContext.bind(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers["x-correlation-id"] = correlation_id
        return response

    install_error_handlers(app)
    app.include_router(milestones.router)
    app.include_router(communications.router)
    app.include_router(packing_lists.router)
    app.include_router(bookings.router)

    logger.info("app_created", extra={"environment": config.environment})
    return app
