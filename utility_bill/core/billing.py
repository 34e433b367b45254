"""
Billing orchestration.

Validates the requested range, fetches usage and tariffs, and runs the
cost engine. Lower level failures are wrapped with the stage they came
from so callers can tell bad input from upstream data problems.

Stages:
1. usage - the provider could not supply usage
2. tariffs - rates or surcharges could not be read
3. calculation - a reading had no matching rate
"""

import logging
import random
from datetime import date, datetime
from typing import Callable, Optional

import requests

from utility_bill.config.loader import BillingConfig
from utility_bill.providers import build_provider_registry
from utility_bill.storage.db import StorageError
from utility_bill.storage.repository import get_repository
from .cost_engine import CostEngine, UnresolvedTariffError
from .intervals import IntervalStore
from .usage_fetcher import UsageFetchError, UsageFetcher

log = logging.getLogger(__name__)

STAGE_USAGE = "usage"
STAGE_TARIFFS = "tariffs"
STAGE_CALCULATION = "calculation"

_STAGE_MESSAGES = {
    STAGE_USAGE: "Could not fetch usage data",
    STAGE_TARIFFS: "Could not fetch tariff rates",
    STAGE_CALCULATION: "Could not calculate cost",
}


class InvalidDateRangeError(ValueError):
    """Raised when a requested billing range is in the future or empty."""


class CostCalculationError(Exception):
    """Raised when a cost calculation fails after input validation."""
    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"{_STAGE_MESSAGES[stage]}: {cause}")
        self.stage = stage
        self.cause = cause


def _as_datetime(value: date) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            # Aware values are compared as naive local time
            return value.astimezone().replace(tzinfo=None)
        return value
    return datetime(value.year, value.month, value.day)


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


class BillingService:
    """Calculates the cost of an account's usage over a date range."""

    def __init__(
        self,
        usage_fetcher: UsageFetcher,
        interval_store: IntervalStore,
        cost_engine: Optional[CostEngine] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.usage_fetcher = usage_fetcher
        self.interval_store = interval_store
        self.cost_engine = cost_engine or CostEngine()
        self.clock = clock

    def validate_dates(self, start_date: date, end_date: date) -> None:
        """Check that a billing range is in the past and non-empty.

        Plain dates are treated as midnight at the start of the day. Aware
        datetimes are converted to naive local time first.

        Raises:
            InvalidDateRangeError: If either date is after now, or the start
                is not earlier than the end
        """
        now = _as_datetime(self.clock())
        start = _as_datetime(start_date)
        end = _as_datetime(end_date)

        if start > now:
            raise InvalidDateRangeError("Start date must be in the past")
        if end > now:
            raise InvalidDateRangeError("End date must be in the past")
        if start >= end:
            raise InvalidDateRangeError("Start date must be earlier than end date")

    def calculate_cost(self, account_id: int, start_date: date, end_date: date) -> float:
        """Calculate the total cost of an account's usage in dollars.

        The calculation is all-or-nothing: any failure aborts it and no
        partial total is returned.

        Args:
            account_id: Account to bill
            start_date: Start of the billing range
            end_date: End of the billing range

        Returns:
            Total cost in dollars

        Raises:
            InvalidDateRangeError: If the range is invalid (before any I/O)
            CostCalculationError: If usage, tariffs or the calculation fail
        """
        self.validate_dates(start_date, end_date)

        try:
            usage = self.usage_fetcher.fetch(account_id, _as_date(start_date), _as_date(end_date))
        except UsageFetchError as e:
            raise CostCalculationError(STAGE_USAGE, e) from e

        try:
            rates = self.interval_store.get_rates(account_id)
            surcharges = self.interval_store.get_surcharges(account_id)
        except StorageError as e:
            raise CostCalculationError(STAGE_TARIFFS, e) from e

        try:
            total = self.cost_engine.compute(usage, rates, surcharges)
        except UnresolvedTariffError as e:
            raise CostCalculationError(STAGE_CALCULATION, e) from e

        log.info("Account %s cost $%.2f from %s to %s", account_id, total, start_date, end_date)
        return total


def create_billing_service(
    config: BillingConfig,
    session: Optional[requests.Session] = None,
    rng: Optional[random.Random] = None
) -> BillingService:
    """Wire a BillingService from configuration.

    Args:
        config: Billing configuration
        session: Optional HTTP session shared by provider adapters
        rng: Optional random source for retry backoff

    Returns:
        Ready to use BillingService
    """
    repository = get_repository(config.db_path)
    fetcher = UsageFetcher(
        repository,
        build_provider_registry(config.providers, session=session),
        max_attempts=config.retry.max_attempts,
        min_backoff_ms=config.retry.min_backoff_ms,
        max_backoff_ms=config.retry.max_backoff_ms,
        rng=rng
    )
    return BillingService(fetcher, IntervalStore(repository))
