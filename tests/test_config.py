"""Tests for capital_ledger.config."""
from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from capital_ledger.config import LedgerSettings, configure_logging
from capital_ledger.errors import ValidationError


class TestLedgerSettings:
    def test_defaults(self):
        settings = LedgerSettings()
        assert settings.database_url.startswith("sqlite:///")
        assert settings.lock_timeout == 30.0
        assert settings.default_withholding_rate == Decimal("0")

    def test_precision_for_currency(self):
        settings = LedgerSettings()
        assert settings.precision_for("USD") == 2
        assert settings.precision_for("jpy") == 0
        assert settings.precision_for("KWD") == 3

    def test_custom_precision_table(self):
        settings = LedgerSettings(default_precision=4, currency_precision={"USD": 2})
        assert settings.precision_for("USD") == 2
        assert settings.precision_for("JPY") == 4

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"default_precision": -1},
            {"lock_timeout": 0},
            {"default_withholding_rate": "1.01"},
            {"default_withholding_rate": "-0.5"},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(ValidationError):
            LedgerSettings(**kwargs)


class TestFromEnv:
    @pytest.fixture(autouse=True)
    def _isolated_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for name in (
            "DATABASE_URL",
            "ECHO_SQL",
            "LOCK_TIMEOUT",
            "DEFAULT_PRECISION",
            "DEFAULT_WITHHOLDING_RATE",
            "LOG_LEVEL",
        ):
            monkeypatch.delenv(f"CAPITAL_LEDGER_{name}", raising=False)

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("CAPITAL_LEDGER_DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setenv("CAPITAL_LEDGER_ECHO_SQL", "true")
        monkeypatch.setenv("CAPITAL_LEDGER_LOCK_TIMEOUT", "2.5")
        monkeypatch.setenv("CAPITAL_LEDGER_DEFAULT_PRECISION", "3")
        monkeypatch.setenv("CAPITAL_LEDGER_DEFAULT_WITHHOLDING_RATE", "0.15")
        monkeypatch.setenv("CAPITAL_LEDGER_LOG_LEVEL", "debug")
        monkeypatch.setenv("UNRELATED", "ignored")

        settings = LedgerSettings.from_env()
        assert settings.database_url == "sqlite:///:memory:"
        assert settings.echo_sql is True
        assert settings.lock_timeout == 2.5
        assert settings.default_precision == 3
        assert settings.default_withholding_rate == Decimal("0.15")
        assert settings.log_level == "DEBUG"

    def test_empty_environment_gives_defaults(self):
        settings = LedgerSettings.from_env()
        assert settings.lock_timeout == 30.0
        assert settings.default_precision == 2
        assert settings.log_level == "INFO"

    def test_keyword_arguments_override_environment(self, monkeypatch):
        monkeypatch.setenv("CAPITAL_LEDGER_DEFAULT_PRECISION", "4")
        assert LedgerSettings(default_precision=1).default_precision == 1

    def test_reads_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("CAPITAL_LEDGER_LOCK_TIMEOUT=7\n", encoding="utf-8")
        assert LedgerSettings.from_env().lock_timeout == 7.0

    def test_lock_timeout_none_waits_forever(self, monkeypatch):
        monkeypatch.setenv("CAPITAL_LEDGER_LOCK_TIMEOUT", "none")
        assert LedgerSettings.from_env().lock_timeout is None

    @pytest.mark.parametrize("value", ["0", "0.0", "-1"])
    def test_non_positive_lock_timeout_rejected(self, monkeypatch, value):
        monkeypatch.setenv("CAPITAL_LEDGER_LOCK_TIMEOUT", value)
        with pytest.raises(ValidationError, match="lock_timeout"):
            LedgerSettings.from_env()

    @pytest.mark.parametrize(
        "name, value",
        [
            ("LOCK_TIMEOUT", "soon"),
            ("DEFAULT_PRECISION", "two"),
            ("DEFAULT_WITHHOLDING_RATE", "ten percent"),
        ],
    )
    def test_malformed_values_raise(self, monkeypatch, name, value):
        monkeypatch.setenv(f"CAPITAL_LEDGER_{name}", value)
        with pytest.raises(ValidationError):
            LedgerSettings.from_env()


class TestConfigureLogging:
    def test_attaches_single_handler(self):
        logger = configure_logging("DEBUG")
        try:
            configure_logging("INFO")
            assert logger.name == "capital_ledger"
            assert len(logger.handlers) == 1
            assert logger.level == logging.INFO
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)
