"""Jemena usage API adapter.

Jemena reports minutes per interval and names tariff bands in upper case,
e.g. OFF_PEAK.
"""

from datetime import date
from typing import Any, Dict

from utility_bill.core.usage import TariffCategory, UsageDatum, UsageReport
from .base import HttpUsageProvider, RawResponse

DEFAULT_BASE_URL = "https://api.jemena.com.au/usage"

BANDS = {
    "PEAK": TariffCategory.PEAK,
    "OFF_PEAK": TariffCategory.OFF_PEAK,
    "SHOULDER": TariffCategory.SHOULDER,
}

usage_schema = {
    "definitions": {
        "interval": {
            "type": "object",
            "properties": {
                "readDate": {"type": "string"},
                "band": {"enum": list(BANDS)},
                "minutes": {"type": "number", "minimum": 0},
            },
            "required": ["readDate", "band", "minutes"],
        }
    },
    "type": "object",
    "properties": {
        "account": {
            "type": "object",
            "properties": {"id": {"type": "integer"}},
            "required": ["id"],
        },
        "intervals": {"type": "array", "items": {"$ref": "#/definitions/interval"}},
    },
    "required": ["account", "intervals"],
}


class JemenaProvider(HttpUsageProvider):
    provider_id = "jemena"
    schema = usage_schema

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout_seconds: float = 10.0, session=None):
        super().__init__(base_url, timeout_seconds, session)

    def usage_url(self, account_id: int) -> str:
        return f"{self.base_url}/accounts/{account_id}/intervals"

    def _build_report(self, raw: RawResponse, record: Dict[str, Any]) -> UsageReport:
        data = tuple(
            UsageDatum(
                date=date.fromisoformat(interval["readDate"]),
                tariff_category=BANDS[interval["band"]],
                duration_hours=interval["minutes"] / 60.0,
            )
            for interval in record["intervals"]
        )
        return UsageReport(account_id=record["account"]["id"], provider=self.provider_id, data=data)
