"""Request-scoped dependencies: one session per request, shared codec."""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from trade_kernel.domain.attestation import AttestationCodec
from trade_kernel.domain.clock import Clock


def get_session(request: Request) -> Generator[Session, None, None]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_codec(request: Request) -> AttestationCodec:
    return request.app.state.codec


def get_clock(request: Request) -> Clock:
    return request.app.state.clock
