"""
Shared capability for utility provider usage adapters.

Every provider adapter fetches a raw response for an account and parses
it into the canonical UsageReport. Failures are signalled with
TransientError or PermanentError so the fetcher can apply one retry policy
to every provider.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

import requests
from jsonschema import validate as js_validate, ValidationError, FormatChecker

from utility_bill.core.usage import UsageReport

log = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429


class TransientError(Exception):
    """A failure that may succeed if the request is repeated.

    Only errors with rate_limited set are retried by the usage fetcher.
    """
    def __init__(self, message: str, rate_limited: bool = False):
        super().__init__(message)
        self.rate_limited = rate_limited


class PermanentError(Exception):
    """A failure that will not succeed on retry (bad status or payload)."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RawResponse:
    """Successful provider response before parsing."""
    account_id: int
    status_code: int
    text: str


class UsageProvider(ABC):
    """Adapter for one external utility provider."""

    provider_id: str = ""

    @abstractmethod
    def fetch_raw(self, account_id: int, start_date: date, end_date: date) -> RawResponse:
        """Call the provider for an account's usage over a date range.

        Raises:
            TransientError: On network failure or rate limiting
            PermanentError: On any other unsuccessful response
        """

    @abstractmethod
    def parse(self, raw: RawResponse) -> UsageReport:
        """Parse a raw response into a UsageReport.

        Raises:
            PermanentError: If the payload is malformed
        """


def _reject_constant(name: str):
    raise ValueError(f"non-finite number {name} is not allowed")


class HttpUsageProvider(UsageProvider):
    """Provider reached with a single HTTP GET per account.

    Subclasses define the response schema and _build_report.
    """

    schema: Dict[str, Any] = {}

    def __init__(self, base_url: str, timeout_seconds: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @property
    def name(self) -> str:
        return self.provider_id.capitalize()

    def usage_url(self, account_id: int) -> str:
        return f"{self.base_url}/{account_id}"

    def fetch_raw(self, account_id: int, start_date: date, end_date: date) -> RawResponse:
        params = {"start": start_date.isoformat(), "end": end_date.isoformat()}
        try:
            resp = self.session.get(self.usage_url(account_id), params=params,
                                    timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise TransientError(f"Error fetching {self.name} data: {e}") from e

        if resp.status_code == HTTP_TOO_MANY_REQUESTS:
            raise TransientError(f"{self.name} rate limit reached", rate_limited=True)
        if not 200 <= resp.status_code < 300:
            msg = "Error fetching data from %s. Status: %d. Error: %s"
            raise PermanentError(msg % (self.name, resp.status_code, resp.text), resp.status_code)

        log.debug("%s returned %d for account %s", self.name, resp.status_code, account_id)
        return RawResponse(account_id=account_id, status_code=resp.status_code, text=resp.text)

    def parse(self, raw: RawResponse) -> UsageReport:
        record = self.validate(raw.text)
        try:
            report = self._build_report(raw, record)
        except (KeyError, TypeError, ValueError) as e:
            raise PermanentError(f"Unexpected {self.name} payload: {e}", raw.status_code) from e
        if report.account_id != raw.account_id:
            raise PermanentError(
                f"{self.name} returned usage for account {report.account_id}, expected {raw.account_id}",
                raw.status_code
            )
        return report

    def validate(self, text: str) -> Dict[str, Any]:
        """Verify the text parses as JSON and satisfies the provider schema."""
        try:
            record = json.loads(text, parse_constant=_reject_constant)
        except ValueError as e:
            raise PermanentError(f"{self.name} response failed to parse as JSON: {e}") from e

        try:
            js_validate(record, self.schema, format_checker=FormatChecker())
        except ValidationError as ve:
            msg = "%s response did not match the expected schema. Reason: %s"
            raise PermanentError(msg % (self.name, ve.message)) from ve

        return record

    @abstractmethod
    def _build_report(self, raw: RawResponse, record: Dict[str, Any]) -> UsageReport:
        """Convert a schema-valid record into a UsageReport."""
