# utility_bill/demo/seed_demo_data.py

from datetime import date
from decimal import Decimal

from utility_bill.core.usage import TariffCategory
from utility_bill.storage.db import DEFAULT_DB_PATH
from utility_bill.storage.models import Account, RateInterval, SurchargeInterval
from utility_bill.storage.repository import (
    initialize_schema,
    insert_account,
    insert_surcharge,
    insert_tariff_rate,
)

DEMO_ACCOUNTS = [
    Account(id=123, provider="ausgrid"),
    Account(id=456, provider="jemena"),
]


def seed_demo_data(db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert two demo accounts with a year of rates and a green power surcharge."""
    initialize_schema(db_path)

    for account in DEMO_ACCOUNTS:
        insert_account(account, db_path)
        for category, rate in (
            (TariffCategory.PEAK, 20),
            (TariffCategory.SHOULDER, 12),
            (TariffCategory.OFF_PEAK, 3),
        ):
            insert_tariff_rate(account.id, RateInterval(
                tariff_category=category,
                rate_per_minute=rate,
                valid_from=date(2023, 7, 1),
                valid_until=date(2024, 7, 1)
            ), db_path)

    insert_surcharge(123, SurchargeInterval(
        percent_increase=Decimal("5"),
        valid_from=date(2023, 7, 1),
        valid_until=date(2024, 7, 1)
    ), db_path)
    insert_surcharge(456, SurchargeInterval(
        percent_increase=Decimal("2.5"),
        valid_from=date(2023, 7, 1),
        valid_until=date(2024, 7, 1),
        applies_to=frozenset({TariffCategory.PEAK, TariffCategory.SHOULDER})
    ), db_path)


if __name__ == "__main__":
    seed_demo_data()
    print("Demo tariff data inserted")
