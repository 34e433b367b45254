"""
Usage fetching from external utility providers.

Resolves which provider owns an account, delegates to its adapter and
retries rate-limited calls with a jittered backoff.

Attempt outcomes:
1. Success - the parsed report is returned
2. Rate limited - retried after a random delay until max_attempts is used up
3. Any other failure - reported immediately as UsageFetchError
"""

import logging
import random
import time
from datetime import date
from typing import Callable, Dict, Optional

from utility_bill.providers.base import PermanentError, TransientError, UsageProvider
from utility_bill.storage.db import StorageError
from utility_bill.storage.repository import TariffRepository
from .usage import UsageReport

log = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_BACKOFF_MS = 1000
DEFAULT_MAX_BACKOFF_MS = 3000


class UsageFetchError(Exception):
    """Raised when usage cannot be fetched for an account."""
    def __init__(self, message: str, cause: Optional[Exception] = None, attempts: int = 0):
        super().__init__(message)
        self.cause = cause
        self.attempts = attempts


class UsageFetcher:
    """Fetches usage reports through provider adapters.

    Only TransientError flagged as rate limited is retried. Network errors
    and permanent provider errors fail on the first attempt.
    """

    def __init__(
        self,
        repository: TariffRepository,
        adapters: Dict[str, UsageProvider],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_backoff_ms: int = DEFAULT_MIN_BACKOFF_MS,
        max_backoff_ms: int = DEFAULT_MAX_BACKOFF_MS,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize the fetcher.

        Args:
            repository: Storage collaborator used to look up accounts
            adapters: Adapter per provider identifier
            max_attempts: Total attempts including the first
            min_backoff_ms: Lower bound of the retry delay (inclusive)
            max_backoff_ms: Upper bound of the retry delay (exclusive)
            rng: Random source for the delay, seeded in tests
            sleep: Function used to wait, in seconds
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.repository = repository
        self.adapters = dict(adapters)
        self.max_attempts = max_attempts
        self.min_backoff_ms = min_backoff_ms
        self.max_backoff_ms = max_backoff_ms
        self.rng = rng or random.Random()
        self.sleep = sleep

    def backoff_seconds(self) -> float:
        """Draw a retry delay uniformly from [min_backoff_ms, max_backoff_ms)."""
        span = self.max_backoff_ms - self.min_backoff_ms
        return (self.min_backoff_ms + self.rng.random() * span) / 1000.0

    def resolve_adapter(self, account_id: int) -> UsageProvider:
        """Find the adapter for the provider that owns an account.

        Raises:
            UsageFetchError: If the account or its adapter cannot be found
        """
        try:
            account = self.repository.get_account(account_id)
        except StorageError as e:
            raise UsageFetchError(f"Unable to look up account {account_id}: {e}", e) from e

        if account is None:
            raise UsageFetchError(f"Account {account_id} does not exist")

        adapter = self.adapters.get(account.provider)
        if adapter is None:
            raise UsageFetchError(
                f"No usage provider registered for '{account.provider}' (account {account_id})"
            )
        return adapter

    def fetch(self, account_id: int, start_date: date, end_date: date) -> UsageReport:
        """Fetch usage for an account over a date range.

        Args:
            account_id: Account to fetch usage for
            start_date: Start of the range
            end_date: End of the range

        Returns:
            Parsed UsageReport from the account's provider

        Raises:
            UsageFetchError: If the provider cannot be resolved, fails
                permanently, or is still rate limiting after max_attempts
        """
        adapter = self.resolve_adapter(account_id)
        provider = adapter.provider_id
        waited = 0.0

        for attempt in range(1, self.max_attempts + 1):
            try:
                raw = adapter.fetch_raw(account_id, start_date, end_date)
                report = adapter.parse(raw)
            except TransientError as e:
                if not e.rate_limited:
                    log.error("Transient failure from %s for account %s: %s", provider, account_id, e)
                    raise UsageFetchError(str(e), e, attempt) from e

                if attempt >= self.max_attempts:
                    log.error(
                        "Giving up on %s for account %s after %d attempts (%.2fs waited)",
                        provider, account_id, attempt, waited
                    )
                    raise UsageFetchError(
                        f"Unable to fetch data from {provider}, timed out after {attempt} attempts",
                        e, attempt
                    ) from e

                delay = self.backoff_seconds()
                log.warning(
                    "%s rate limited account %s on attempt %d/%d, retrying in %.2fs",
                    provider, account_id, attempt, self.max_attempts, delay
                )
                self.sleep(delay)
                waited += delay
            except PermanentError as e:
                log.error("Permanent failure from %s for account %s: %s", provider, account_id, e)
                raise UsageFetchError(str(e), e, attempt) from e
            else:
                log.info(
                    "Fetched %d readings (%.2f hours) from %s for account %s in %d attempt(s)",
                    len(report.data), report.total_hours, provider, account_id, attempt
                )
                return report

        # Unreachable: the final attempt either returns or raises
        raise UsageFetchError(f"Unable to fetch data from {provider}", attempts=self.max_attempts)
