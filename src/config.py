from __future__ import annotations

from datetime import date, datetime, timedelta
from functools import cache
from typing import Any

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.costing import CostingMethod
from domain.errors import ConfigurationError
from domain.like_kind import LikeKindPolicy

CUTOFF_DATE_FORMATS = ("%Y-%m-%d", "%y-%m-%d")


class LedgerSettings(BaseSettings):
    costing_method: CostingMethod = CostingMethod.FIFO
    home_currency: str = "USD"
    like_kind_cutoff: date | None = None
    long_term_days: int = 365

    model_config = SettingsConfigDict(env_prefix="LEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("costing_method", mode="before")
    @classmethod
    def _parse_costing_method(cls, value: Any) -> CostingMethod:
        try:
            return CostingMethod.parse(value)
        except ValueError as err:
            choices = ", ".join(method.value for method in CostingMethod)
            raise ValueError(f"unknown costing method {value!r}, expected one of {choices} or 1-4") from err

    @field_validator("home_currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Any) -> str:
        code = str(value).strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"home currency must be a three-letter code, got {value!r}")
        return code

    @field_validator("like_kind_cutoff", mode="before")
    @classmethod
    def _parse_cutoff(cls, value: Any) -> date | None:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        text = str(value).strip()
        # %Y would happily read "17" as the year 17.
        fmt = CUTOFF_DATE_FORMATS[1] if len(text.split("-", 1)[0]) == 2 else CUTOFF_DATE_FORMATS[0]
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError as err:
            raise ValueError(f"like-kind cutoff must use %Y-%m-%d or %y-%m-%d, got {value!r}") from err

    @field_validator("long_term_days")
    @classmethod
    def _positive_days(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("long_term_days must be > 0")
        return value

    @property
    def long_term_threshold(self) -> timedelta:
        return timedelta(days=self.long_term_days)

    @property
    def like_kind_policy(self) -> LikeKindPolicy:
        return LikeKindPolicy(cutoff=self.like_kind_cutoff)


def load_settings(**overrides: Any) -> LedgerSettings:
    """Build settings from the environment plus explicit overrides, failing fast on bad values."""
    try:
        return LedgerSettings(**overrides)
    except ValidationError as err:
        raise ConfigurationError(f"Invalid ledger configuration: {err}") from err


@cache
def settings() -> LedgerSettings:
    return load_settings()
