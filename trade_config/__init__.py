"""
trade_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``trade_kernel`` and below ``trade_api``.
    The kernel MUST NEVER import from ``trade_config``; ``bridges`` hands
    resolved values to kernel constructors.

Invariants enforced:
    - The attestation secret is required.  An absent, empty, short or
      placeholder secret fails with SigningSecretError before any caller
      receives a config.  There is no compiled-in fallback.

Failure modes:
    - ``ConfigurationError`` -- unreadable file, invalid YAML, bad values.
    - ``SigningSecretError`` -- attestation secret absent or unsafe.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from trade_config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_CONFIG_FILE,
    ENV_SECRET,
    apply_env_overrides,
    load_yaml_file,
    merge_sections,
    parse_int,
    parse_log_level,
)
from trade_config.schema import TradeConfig
from trade_kernel.domain.attestation import validate_signing_secret
from trade_kernel.exceptions import ConfigurationError, SigningSecretError

_logger = logging.getLogger("trade_kernel.config")

__all__ = [
    "ConfigurationError",
    "SigningSecretError",
    "TradeConfig",
    "get_active_config",
]


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> TradeConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load on top of the built-in defaults.
            Falls back to TRADE_CONFIG_FILE when not given.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        A frozen, fully validated TradeConfig.

    Raises:
        ConfigurationError: invalid file or value.
        SigningSecretError: attestation secret absent or unsafe.
    """
    env = os.environ if environ is None else environ

    data = load_yaml_file(DEFAULT_CONFIG_FILE)
    path = config_path or env.get(ENV_CONFIG_FILE) or None
    if path:
        data = merge_sections(data, load_yaml_file(Path(path)))
    data = apply_env_overrides(data, env)

    database = data.get("database") or {}
    attestation = data.get("attestation") or {}

    database_url = database.get("url")
    if not database_url:
        raise ConfigurationError("database.url is required")

    secret_var = attestation.get("secret_env") or ENV_SECRET
    secret = env.get(secret_var)
    try:
        validate_signing_secret(secret)
    except SigningSecretError:
        _logger.critical(
            "attestation_secret_rejected",
            extra={"secret_env": secret_var},
        )
        raise

    config = TradeConfig(
        database_url=str(database_url),
        attestation_secret=secret,
        log_level=parse_log_level((data.get("logging") or {}).get("level")),
        db_pool_size=parse_int(database.get("pool_size", 20), "database.pool_size"),
        db_max_overflow=parse_int(database.get("max_overflow", 10), "database.max_overflow"),
        environment=str((data.get("app") or {}).get("environment") or "development"),
        source=str(path) if path else None,
    )

    _logger.info(
        "TRADE_CONFIG_TRACE",
        extra={
            "trace_type": "TRADE_CONFIG_TRACE",
            "environment": config.environment,
            "source": config.source,
            "log_level": config.log_level,
        },
    )
    return config
