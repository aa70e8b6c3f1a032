"""
Bridges from a resolved TradeConfig to kernel objects.

The kernel never reads configuration itself; these helpers pass the
resolved values into kernel constructors.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from trade_config.schema import TradeConfig
from trade_kernel.db.engine import init_engine_from_url
from trade_kernel.domain.attestation import AttestationCodec
from trade_kernel.logging_config import configure_logging


def build_attestation_codec(config: TradeConfig) -> AttestationCodec:
    return AttestationCodec(config.attestation_secret)


def init_kernel(config: TradeConfig) -> Engine:
    """Configure logging and the database engine for this process."""
    configure_logging(level=config.log_level)
    return init_engine_from_url(
        config.database_url,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
    )
