"""
Runtime configuration schema.

One frozen dataclass; every value is resolved and validated before an
instance exists, so holders never re-check it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError


@dataclass(frozen=True)
class TradeConfig:
    """Resolved runtime configuration for one process."""

    database_url: str
    attestation_secret: str = field(repr=False)
    log_level: str = "INFO"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    environment: str = "development"
    source: str | None = None

    def __repr__(self) -> str:
        return (
            f"TradeConfig(environment={self.environment!r}, "
            f"database_url={_redact_url(self.database_url)!r}, "
            f"log_level={self.log_level!r})"
        )


def _redact_url(url: str) -> str:
    """Database URL with its password masked; unparseable URLs are hidden whole."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "***"
