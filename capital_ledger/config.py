"""
config.py — Runtime settings and logging setup for the ledger.

Depends only on: errors.py
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from pydantic import Field, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from capital_ledger.errors import ValidationError

ENV_PREFIX = "CAPITAL_LEDGER_"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# ISO 4217 minor units for currencies that do not use two decimals
DEFAULT_CURRENCY_PRECISION: dict[str, int] = {
    "JPY": 0,
    "KRW": 0,
    "CLP": 0,
    "ISK": 0,
    "BHD": 3,
    "KWD": 3,
    "OMR": 3,
}


class LedgerSettings(BaseSettings):
    """
    Configuration for a capital ledger instance.

    Every field can also come from a ``CAPITAL_LEDGER_<FIELD>`` environment
    variable or a ``.env`` file. Keyword arguments win over both.
    ``CAPITAL_LEDGER_LOCK_TIMEOUT=none`` waits for locks without a limit.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_parse_none_str="none",
        extra="ignore",
    )

    database_url: str = "sqlite:///./capital_ledger.db"
    echo_sql: bool = False
    lock_timeout: Optional[float] = 30.0  # seconds; None waits forever
    default_precision: int = 2
    currency_precision: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_CURRENCY_PRECISION)
    )
    default_withholding_rate: Decimal = Decimal("0")
    log_level: str = "INFO"

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid ledger settings: {exc}") from exc

    @field_validator("default_precision")
    @classmethod
    def _non_negative_precision(cls, value: int) -> int:
        if value < 0:
            raise ValueError("default_precision must be non-negative")
        return value

    @field_validator("lock_timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("lock_timeout must be positive, or none to wait forever")
        return value

    @field_validator("default_withholding_rate")
    @classmethod
    def _rate_in_range(cls, value: Decimal) -> Decimal:
        if not Decimal("0") <= value <= Decimal("1"):
            raise ValueError("default_withholding_rate must be within [0, 1]")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    def precision_for(self, currency: str) -> int:
        """Number of decimal places amounts in ``currency`` are rounded to."""
        return self.currency_precision.get(currency.upper(), self.default_precision)

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        """Settings from the environment and ``.env`` alone, defaults elsewhere."""
        return cls()


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Attach a stream handler to the ``capital_ledger`` logger.

    Safe to call more than once; an existing handler is reused.
    """
    logger = logging.getLogger("capital_ledger")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
