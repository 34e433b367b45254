"""
Interval lookups for tariff rates and green power surcharges.

Groups an account's stored intervals by tariff category so the cost
engine can resolve each usage reading with a single dictionary lookup.
"""

import logging
from typing import Dict, List

from utility_bill.storage.models import RateInterval, SurchargeInterval
from utility_bill.storage.repository import TariffRepository
from .usage import ALL_TARIFFS, TariffCategory

log = logging.getLogger(__name__)

RateMap = Dict[TariffCategory, List[RateInterval]]
SurchargeMap = Dict[TariffCategory, List[SurchargeInterval]]


class IntervalStore:
    """Per-account rate and surcharge intervals keyed by tariff category.

    Storage failures propagate as StorageError and are never retried here.
    """

    def __init__(self, repository: TariffRepository):
        self.repository = repository

    def get_rates(self, account_id: int) -> RateMap:
        """Get rate intervals for an account grouped by tariff category.

        Args:
            account_id: Account to look up

        Returns:
            Mapping of category to intervals in stored order. Empty if the
            account has no rates.

        Raises:
            StorageError: If the underlying storage fails
        """
        rates: RateMap = {}
        for rate in self.repository.list_tariff_rates(account_id):
            rates.setdefault(rate.tariff_category, []).append(rate)

        log.debug("Loaded rates for account %s: %s", account_id,
                  {category.value: len(items) for category, items in rates.items()})
        return rates

    def get_surcharges(self, account_id: int) -> SurchargeMap:
        """Get green power surcharges for an account grouped by tariff category.

        A surcharge without a category restriction is expanded into every
        tariff category; a restricted one only into its own categories.

        Raises:
            StorageError: If the underlying storage fails
        """
        surcharges: SurchargeMap = {}
        for surcharge in self.repository.list_surcharges(account_id):
            applies_to = surcharge.applies_to if surcharge.applies_to is not None else ALL_TARIFFS
            # Keep the fixed enumeration order for restricted surcharges too
            for category in ALL_TARIFFS:
                if category in applies_to:
                    surcharges.setdefault(category, []).append(surcharge)

        return surcharges
