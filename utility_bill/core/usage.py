"""
Usage readings and tariff categories.

Canonical shape that every provider adapter parses into.
"""

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Tuple


class TariffCategory(Enum):
    """Usage-time bands that determine which rate applies."""
    PEAK = "peak"
    OFF_PEAK = "off-peak"
    SHOULDER = "shoulder"


# Fixed enumeration used when a surcharge applies to every category
ALL_TARIFFS: Tuple[TariffCategory, ...] = tuple(TariffCategory)


@dataclass(frozen=True)
class UsageDatum:
    """A single usage reading for one day and tariff band."""
    date: date
    tariff_category: TariffCategory
    duration_hours: float

    def __post_init__(self):
        if not math.isfinite(self.duration_hours):
            raise ValueError("duration_hours must be finite")
        if self.duration_hours < 0:
            raise ValueError("duration_hours must be >= 0")


@dataclass(frozen=True)
class UsageReport:
    """Usage returned by a provider for one account.

    Produced once per fetch and consumed by the cost engine. Never persisted.
    """
    account_id: int
    provider: str
    data: Tuple[UsageDatum, ...] = ()

    @property
    def total_hours(self) -> float:
        """Total hours of usage across every reading."""
        return sum(datum.duration_hours for datum in self.data)
