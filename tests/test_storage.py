"""
Unit tests for storage layer.

Tests schema creation, tariff insertion, and retrieval operations.
"""

import os
import sqlite3
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from utility_bill.core.usage import TariffCategory
from utility_bill.storage.db import StorageError, get_connection
from utility_bill.storage.models import Account, RateInterval, SurchargeInterval
from utility_bill.storage.repository import (
    TariffRepository,
    get_repository,
    initialize_schema,
    insert_account,
    insert_surcharge,
    insert_tariff_rate,
)


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self):
        """Verify tables are created correctly."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            initialize_schema(db_path)

            conn = get_connection(db_path)
            try:
                cursor = conn.execute("""
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name IN ('account', 'tariff_rate', 'green_power_surcharge')
                    ORDER BY name
                """)
                tables = [row[0] for row in cursor.fetchall()]
                assert tables == ['account', 'green_power_surcharge', 'tariff_rate']

                cursor = conn.execute("PRAGMA table_info(green_power_surcharge)")
                column_names = [col[1] for col in cursor.fetchall()]
                assert column_names == [
                    'id', 'account_id', 'perc_inc', 'start_date', 'end_date', 'only_on_tariffs'
                ]
            finally:
                conn.close()

    def test_schema_creation_is_repeatable(self):
        """Verify initializing twice does not fail."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            initialize_schema(db_path)
            initialize_schema(db_path)


class TestTariffRepository:
    """Test account and tariff retrieval."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_schema(self.db_path)
        insert_account(Account(id=123, provider="ausgrid"), self.db_path)
        self.repository = TariffRepository(self.db_path)

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_get_account(self):
        """Test looking up an existing account."""
        assert self.repository.get_account(123) == Account(id=123, provider="ausgrid")

    def test_get_missing_account(self):
        """Test a missing account returns None."""
        assert self.repository.get_account(999) is None

    def test_rates_round_trip_in_start_order(self):
        """Test rates are returned ordered by start date."""
        later = RateInterval(TariffCategory.PEAK, 20, date(2023, 8, 1), date(2024, 1, 1))
        earlier = RateInterval(TariffCategory.PEAK, 10, date(2023, 1, 1), date(2023, 8, 1))
        insert_tariff_rate(123, later, self.db_path)
        insert_tariff_rate(123, earlier, self.db_path)

        assert self.repository.list_tariff_rates(123) == [earlier, later]

    def test_rates_are_scoped_to_account(self):
        """Test another account's rates are not returned."""
        insert_account(Account(id=456, provider="jemena"), self.db_path)
        insert_tariff_rate(456, RateInterval(TariffCategory.PEAK, 20, date(2023, 1, 1), date(2024, 1, 1)), self.db_path)

        assert self.repository.list_tariff_rates(123) == []

    def test_surcharges_round_trip(self):
        """Test global and restricted surcharges are read back."""
        everywhere = SurchargeInterval(Decimal("5"), date(2023, 1, 1), date(2024, 1, 1))
        restricted = SurchargeInterval(
            Decimal("2.5"), date(2023, 2, 1), date(2024, 1, 1),
            applies_to=frozenset({TariffCategory.PEAK, TariffCategory.SHOULDER})
        )
        insert_surcharge(123, everywhere, self.db_path)
        insert_surcharge(123, restricted, self.db_path)

        assert self.repository.list_surcharges(123) == [everywhere, restricted]

    def test_no_surcharges(self):
        """Test an account without surcharges returns an empty list."""
        assert self.repository.list_surcharges(123) == []

    def test_insert_rejects_empty_interval(self):
        """Test valid_from must be before valid_until."""
        rate = RateInterval(TariffCategory.PEAK, 20, date(2023, 1, 1), date(2023, 1, 1))
        with pytest.raises(ValueError, match="valid_from must be earlier than valid_until"):
            insert_tariff_rate(123, rate, self.db_path)

    def test_insert_rejects_negative_surcharge(self):
        """Test surcharges cannot be negative."""
        surcharge = SurchargeInterval(Decimal("-1"), date(2023, 1, 1), date(2024, 1, 1))
        with pytest.raises(ValueError, match="percent_increase must be >= 0"):
            insert_surcharge(123, surcharge, self.db_path)

    def test_missing_table_raises_storage_error(self):
        """Test schema problems surface as StorageError."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("DROP TABLE green_power_surcharge")
            conn.commit()
        finally:
            conn.close()

        with pytest.raises(StorageError, match="no such table") as exc:
            self.repository.list_surcharges(123)
        assert isinstance(exc.value.cause, sqlite3.OperationalError)

    def test_malformed_row_raises_storage_error(self):
        """Test rows that do not match the model surface as StorageError."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO tariff_rate (account_id, tariff, rate_per_min, start_date, end_date)
                VALUES (123, 'super-peak', 20, '2023-01-01', '2024-01-01')
            """)
            conn.commit()
        finally:
            conn.close()

        with pytest.raises(StorageError, match="Malformed tariff_rate row"):
            self.repository.list_tariff_rates(123)


class TestGetRepository:
    """Test shared repository instance."""

    def test_same_path_returns_same_instance(self):
        assert get_repository("a.db") is get_repository("a.db")

    def test_different_path_returns_new_instance(self):
        assert get_repository("b.db").db_path == "b.db"
        assert get_repository("c.db").db_path == "c.db"
