"""Ausgrid usage API adapter."""

from datetime import date
from typing import Any, Dict

from utility_bill.core.usage import TariffCategory, UsageDatum, UsageReport
from .base import HttpUsageProvider, RawResponse

DEFAULT_BASE_URL = "https://ausgrid.com.au/usage-data"

usage_schema = {
    "type": "object",
    "properties": {
        "accountId": {"type": "integer"},
        "readings": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "date": {"type": "string"},
                    "tariff": {"enum": [t.value for t in TariffCategory]},
                    "hours": {"type": "number", "minimum": 0},
                },
                "required": ["date", "tariff", "hours"],
            },
        },
    },
    "required": ["accountId", "readings"],
}


class AusgridProvider(HttpUsageProvider):
    """Ausgrid reports hours of usage per day and tariff."""

    provider_id = "ausgrid"
    schema = usage_schema

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout_seconds: float = 10.0, session=None):
        super().__init__(base_url, timeout_seconds, session)

    def _build_report(self, raw: RawResponse, record: Dict[str, Any]) -> UsageReport:
        data = tuple(
            UsageDatum(
                date=date.fromisoformat(reading["date"]),
                tariff_category=TariffCategory(reading["tariff"]),
                duration_hours=float(reading["hours"]),
            )
            for reading in record["readings"]
        )
        return UsageReport(account_id=record["accountId"], provider=self.provider_id, data=data)
