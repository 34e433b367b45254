"""
Data models for storage layer.

Defines accounts and the time-bounded tariff records attached to them.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import FrozenSet, Optional

from utility_bill.core.usage import TariffCategory


@dataclass(frozen=True)
class Account:
    """A customer account and the provider that reports its usage."""
    id: int
    provider: str


@dataclass(frozen=True)
class RateInterval:
    """Price per minute for one tariff category over [valid_from, valid_until)."""
    tariff_category: TariffCategory
    rate_per_minute: int  # cents
    valid_from: date
    valid_until: date

    def covers(self, day: date) -> bool:
        return self.valid_from <= day < self.valid_until


@dataclass(frozen=True)
class SurchargeInterval:
    """Green power surcharge over [valid_from, valid_until).

    applies_to of None means the surcharge applies to every tariff category.
    """
    percent_increase: Decimal
    valid_from: date
    valid_until: date
    applies_to: Optional[FrozenSet[TariffCategory]] = None

    def covers(self, day: date) -> bool:
        return self.valid_from <= day < self.valid_until
