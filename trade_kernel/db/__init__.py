"""Database layer - engine, base classes, types, and immutability."""

from trade_kernel.db.base import Base, TrackedBase
from trade_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    unit_of_work,
)
from trade_kernel.db.types import IdentityKey, SealHex

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session_factory",
    "create_tables",
    "unit_of_work",
    "Base",
    "TrackedBase",
    "IdentityKey",
    "SealHex",
]
