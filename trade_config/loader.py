"""
YAML + environment loading for TradeConfig.

Precedence, lowest to highest:
    1. built-in defaults (``defaults.yaml`` next to this module)
    2. the YAML file named by the caller or by TRADE_CONFIG_FILE
    3. environment variables

The attestation secret is read from the environment only (VPL_SECRET_KEY
unless the YAML names another variable under ``attestation.secret_env``).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from trade_kernel.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"

ENV_CONFIG_FILE = "TRADE_CONFIG_FILE"
ENV_SECRET = "VPL_SECRET_KEY"

# environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "TRADE_DATABASE_URL": ("database", "url"),
    "TRADE_DB_POOL_SIZE": ("database", "pool_size"),
    "TRADE_DB_MAX_OVERFLOW": ("database", "max_overflow"),
    "TRADE_LOG_LEVEL": ("logging", "level"),
    "TRADE_ENVIRONMENT": ("app", "environment"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: the file is missing, unreadable, not valid YAML,
            or its top level is not a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}") from None
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


def merge_sections(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Two-level merge: sections are merged key by key."""
    merged: dict[str, Any] = {k: dict(v) if isinstance(v, dict) else v for k, v in base.items()}
    for section, values in override.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def apply_env_overrides(data: Mapping[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, dict[str, Any]] = {}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value not in (None, ""):
            overrides.setdefault(section, {})[key] = value
    return merge_sections(data, overrides)


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if parsed < 0:
        raise ConfigurationError(f"{name} must not be negative, got {parsed}")
    return parsed


def parse_log_level(value: Any) -> str:
    level = str(value or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"Unknown log level: {value!r}")
    return level
