"""
Cost calculations for electricity usage.

Resolves the rate and green power surcharge that apply to each usage
reading and totals them. Performs no I/O.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Optional, Sequence, TypeVar

from .intervals import RateMap, SurchargeMap
from .usage import TariffCategory, UsageDatum, UsageReport

log = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal("60")
CENTS_PER_DOLLAR = Decimal("100")
PERCENT = Decimal("100")

T = TypeVar("T")


class UnresolvedTariffError(Exception):
    """Raised when no rate interval covers a usage reading."""
    def __init__(self, category, day: date):
        label = category.value if isinstance(category, TariffCategory) else category
        super().__init__(f"Unknown rate for tariff {label} on date {day.isoformat()}")
        self.category = category
        self.date = day


def _find_interval(candidates: Optional[Sequence[T]], datum: UsageDatum, kind: str) -> Optional[T]:
    """Return the first interval covering the datum's date, in stored order."""
    matches = [interval for interval in candidates or () if interval.covers(datum.date)]
    if len(matches) > 1:
        log.warning(
            "%d overlapping %s intervals for tariff %s on %s, using the first",
            len(matches), kind, datum.tariff_category.value, datum.date.isoformat()
        )
    return matches[0] if matches else None


class CostEngine:
    """Computes the total cost of a usage report.

    Arithmetic is exact Decimal until the end, where the total is
    quantized to whole cents with banker's rounding.
    """

    def datum_cost_cents(self, datum: UsageDatum, rates: RateMap, surcharges: SurchargeMap) -> Decimal:
        """Calculate the unrounded cost of a single reading in cents.

        Raises:
            UnresolvedTariffError: If no rate covers the reading
        """
        if not isinstance(datum.tariff_category, TariffCategory):
            raise UnresolvedTariffError(datum.tariff_category, datum.date)

        rate = _find_interval(rates.get(datum.tariff_category), datum, "rate")
        if rate is None:
            raise UnresolvedTariffError(datum.tariff_category, datum.date)

        minutes = Decimal(str(datum.duration_hours)) * MINUTES_PER_HOUR
        cost = Decimal(rate.rate_per_minute) * minutes

        surcharge = _find_interval(surcharges.get(datum.tariff_category), datum, "surcharge")
        if surcharge is not None:
            cost = cost * (1 + Decimal(str(surcharge.percent_increase)) / PERCENT)

        return cost

    def compute(self, usage: UsageReport, rates: RateMap, surcharges: SurchargeMap) -> float:
        """Calculate total cost in dollars for a usage report.

        One unresolved reading aborts the whole calculation; no partial
        totals are returned. Missing surcharges contribute nothing.

        Args:
            usage: Usage readings to price
            rates: Rate intervals keyed by tariff category
            surcharges: Surcharge intervals keyed by tariff category

        Returns:
            Total cost in dollars rounded half-even to 2 decimal places

        Raises:
            UnresolvedTariffError: If any reading has no matching rate
        """
        total_cents = Decimal("0")
        for datum in usage.data:
            total_cents += self.datum_cost_cents(datum, rates, surcharges)

        dollars = (total_cents / CENTS_PER_DOLLAR).quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
        log.debug("Account %s: %d readings cost $%s", usage.account_id, len(usage.data), dollars)
        return float(dollars)
