"""
Currency Models

A rate table is supplied by an external collaborator. The engine never
fetches rates; it only reads the most recent table it was handed.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from pocket_ledger.models.ledger import ZERO, naive_utc, normalize_amount, utc_now


def clean_rates(raw: Any) -> dict[str, Decimal]:
    """Upper-case codes and drop rates that are not finite and positive."""
    if not raw:
        return {}
    cleaned = {}
    for code, value in dict(raw).items():
        rate = normalize_amount(value)
        if rate > ZERO:
            cleaned[str(code).strip().upper()] = rate
    return cleaned


class RateTable(BaseModel):
    """
    Exchange rates anchored to a base currency.

    1 unit of `base` = `rates[code]` units of `code`.
    Non-finite and non-positive rates are dropped on ingestion, so a
    missing key is the only way a rate can be unavailable.
    """

    base: str = Field(..., min_length=1)
    rates: dict[str, Decimal] = Field(default_factory=dict)
    as_of: datetime = Field(default_factory=utc_now)

    @field_validator('base', mode='before')
    @classmethod
    def uppercase_base(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator('as_of', mode='before')
    @classmethod
    def normalize_as_of(cls, v: Any) -> Any:
        return naive_utc(v)

    @field_validator('rates', mode='before')
    @classmethod
    def normalize_rates(cls, v: Any) -> dict[str, Decimal]:
        return clean_rates(v)

    @property
    def is_empty(self) -> bool:
        return not self.rates

    def is_stale(self, now: Optional[datetime] = None, max_age_days: int = 7) -> bool:
        """
        Check whether the table is older than `max_age_days`.

        A stale table is still used for conversion; staleness only tells
        the caller it is time to ask the rate collaborator for a new one.
        """
        now = now or utc_now()
        return now - self.as_of >= timedelta(days=max_age_days)


class ConvertedAmount(BaseModel):
    """
    Result of converting one amount.

    `conversion_available` is False when a rate was missing and the
    original amount was passed through unchanged.
    """

    amount: Decimal
    original_amount: Decimal
    original_currency: str
    target_currency: str
    conversion_available: bool = True

    @property
    def was_converted(self) -> bool:
        return self.original_currency != self.target_currency and self.conversion_available
