"""Tests for configuration loading and the startup secret check."""

import pytest

from trade_config import TradeConfig, get_active_config
from trade_config.bridges import build_attestation_codec
from trade_config.loader import merge_sections, parse_int, parse_log_level
from trade_kernel.exceptions import ConfigurationError, SigningSecretError

from tests.conftest import TEST_SECRET


def _env(**extra) -> dict[str, str]:
    return {"VPL_SECRET_KEY": TEST_SECRET, **extra}


class TestDefaults:

    def test_builtin_defaults(self):
        config = get_active_config(environ=_env())

        assert config.database_url == "sqlite:///trade.db"
        assert config.log_level == "INFO"
        assert config.db_pool_size == 20
        assert config.environment == "development"
        assert config.source is None
        assert config.attestation_secret == TEST_SECRET

    def test_config_is_frozen(self):
        config = get_active_config(environ=_env())
        with pytest.raises(AttributeError):
            config.log_level = "DEBUG"

    def test_trace_logged(self, captured_logs):
        get_active_config(environ=_env(TRADE_ENVIRONMENT="staging"))
        traces = [r for r in captured_logs() if r["message"] == "TRADE_CONFIG_TRACE"]
        assert traces[0]["environment"] == "staging"


class TestOverrides:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "trade.yaml"
        path.write_text(
            "app:\n  environment: production\n"
            "database:\n  url: postgresql://trade:pw@db/trade\n  pool_size: 5\n"
        )

        config = get_active_config(path, environ=_env())

        assert config.environment == "production"
        assert config.database_url == "postgresql://trade:pw@db/trade"
        assert config.db_pool_size == 5
        # Untouched keys keep their defaults
        assert config.db_max_overflow == 10
        assert config.source == str(path)

    def test_config_file_from_environment(self, tmp_path):
        path = tmp_path / "trade.yaml"
        path.write_text("logging:\n  level: debug\n")

        config = get_active_config(environ=_env(TRADE_CONFIG_FILE=str(path)))

        assert config.log_level == "DEBUG"

    def test_environment_beats_file(self, tmp_path):
        path = tmp_path / "trade.yaml"
        path.write_text("database:\n  url: sqlite:///from-file.db\n")

        config = get_active_config(
            path, environ=_env(TRADE_DATABASE_URL="sqlite:///from-env.db", TRADE_DB_POOL_SIZE="3")
        )

        assert config.database_url == "sqlite:///from-env.db"
        assert config.db_pool_size == 3

    def test_custom_secret_variable(self, tmp_path):
        path = tmp_path / "trade.yaml"
        path.write_text("attestation:\n  secret_env: PACKING_LIST_KEY\n")

        config = get_active_config(path, environ={"PACKING_LIST_KEY": TEST_SECRET})

        assert config.attestation_secret == TEST_SECRET


class TestSecretValidation:

    def test_missing_secret_fails(self, captured_logs):
        with pytest.raises(SigningSecretError):
            get_active_config(environ={})

        rejected = [r for r in captured_logs() if r["message"] == "attestation_secret_rejected"]
        assert rejected[0]["level"] == "CRITICAL"
        assert rejected[0]["secret_env"] == "VPL_SECRET_KEY"

    @pytest.mark.parametrize(
        "secret",
        ["", "too-short", "your-super-secret-vpl-key-change-this-in-production"],
    )
    def test_unsafe_secret_fails(self, secret):
        with pytest.raises(SigningSecretError):
            get_active_config(environ={"VPL_SECRET_KEY": secret})

    def test_secret_hidden_from_repr(self):
        config = TradeConfig(
            database_url="postgresql://trade:hunter2@db/trade",
            attestation_secret=TEST_SECRET,
        )
        text = repr(config)
        assert TEST_SECRET not in text
        assert "hunter2" not in text
        assert "trade:***@db/trade" in text

    @pytest.mark.parametrize(
        "url, shown",
        [
            ("sqlite:///trade.db", "sqlite:///trade.db"),
            ("postgresql+psycopg2://trade:p%40ss@db:5432/trade", "postgresql+psycopg2://trade:***@db:5432/trade"),
            ("not a url", "***"),
        ],
    )
    def test_database_url_redaction(self, url, shown):
        config = TradeConfig(database_url=url, attestation_secret=TEST_SECRET)
        assert f"database_url={shown!r}" in repr(config)

    def test_codec_from_config(self):
        codec = build_attestation_codec(get_active_config(environ=_env()))
        assert codec.verify(codec.generate({"a": 1})).is_valid


class TestInvalidFiles:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            get_active_config(tmp_path / "absent.yaml", environ=_env())

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("database: [unclosed\n")
        with pytest.raises(ConfigurationError):
            get_active_config(path, environ=_env())

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            get_active_config(path, environ=_env())

    def test_empty_database_url(self, tmp_path):
        path = tmp_path / "trade.yaml"
        path.write_text("database:\n  url: ''\n")
        with pytest.raises(ConfigurationError):
            get_active_config(path, environ=_env())


class TestParsers:

    def test_parse_int(self):
        assert parse_int("7", "x") == 7
        for bad in ("seven", True, -1, None):
            with pytest.raises(ConfigurationError):
                parse_int(bad, "x")

    def test_parse_log_level(self):
        assert parse_log_level("warning") == "WARNING"
        assert parse_log_level(None) == "INFO"
        with pytest.raises(ConfigurationError):
            parse_log_level("chatty")

    def test_merge_sections_is_two_level(self):
        merged = merge_sections(
            {"database": {"url": "a", "pool_size": 1}},
            {"database": {"url": "b"}, "app": {"environment": "x"}},
        )
        assert merged == {"database": {"url": "b", "pool_size": 1}, "app": {"environment": "x"}}
