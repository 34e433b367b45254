"""
Repository pattern for data access.

Handles account lookup and listing of tariff rates and green power
surcharges by account.
"""

import sqlite3
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from utility_bill.core.usage import TariffCategory
from .db import DEFAULT_DB_PATH, StorageError, get_connection
from .models import Account, RateInterval, SurchargeInterval


class TariffRepository:
    """Read access to accounts, tariff rates and surcharges.

    Every query opens its own connection, so one repository can be shared
    between concurrent calculations. Any sqlite failure or malformed row
    is raised as StorageError.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def _query(self, sql: str, params: Iterable) -> List[tuple]:
        try:
            conn = get_connection(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Unable to connect to database: {e}", e) from e
        try:
            return conn.execute(sql, list(params)).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e), e) from e
        finally:
            conn.close()

    def get_account(self, account_id: int) -> Optional[Account]:
        """Look up an account by id.

        Returns:
            The account, or None if it does not exist
        """
        rows = self._query("SELECT id, provider FROM account WHERE id = ?", [account_id])
        if not rows:
            return None
        return Account(id=rows[0][0], provider=rows[0][1])

    def list_tariff_rates(self, account_id: int) -> List[RateInterval]:
        """List every rate interval for an account in stored order."""
        rows = self._query("""
            SELECT tariff, rate_per_min, start_date, end_date
            FROM tariff_rate
            WHERE account_id = ?
            ORDER BY start_date, id
        """, [account_id])
        try:
            return [
                RateInterval(
                    tariff_category=TariffCategory(row[0]),
                    rate_per_minute=int(row[1]),
                    valid_from=date.fromisoformat(row[2]),
                    valid_until=date.fromisoformat(row[3])
                )
                for row in rows
            ]
        except (TypeError, ValueError) as e:
            raise StorageError(f"Malformed tariff_rate row for account {account_id}: {e}", e) from e

    def list_surcharges(self, account_id: int) -> List[SurchargeInterval]:
        """List every green power surcharge for an account in stored order."""
        rows = self._query("""
            SELECT perc_inc, start_date, end_date, only_on_tariffs
            FROM green_power_surcharge
            WHERE account_id = ?
            ORDER BY start_date, id
        """, [account_id])
        try:
            return [
                SurchargeInterval(
                    percent_increase=Decimal(str(row[0])),
                    valid_from=date.fromisoformat(row[1]),
                    valid_until=date.fromisoformat(row[2]),
                    applies_to=_decode_tariffs(row[3])
                )
                for row in rows
            ]
        except (TypeError, ValueError, InvalidOperation) as e:
            raise StorageError(
                f"Malformed green_power_surcharge row for account {account_id}: {e}", e
            ) from e


def _decode_tariffs(value: Optional[str]):
    if value is None:
        return None
    return frozenset(TariffCategory(name.strip()) for name in value.split(",") if name.strip())


def _encode_tariffs(tariffs) -> Optional[str]:
    if tariffs is None:
        return None
    return ",".join(sorted(TariffCategory(t).value for t in tariffs))


# Global repository instance
_default_repository: Optional[TariffRepository] = None


def get_repository(db_path: str = DEFAULT_DB_PATH) -> TariffRepository:
    """Get a repository instance.

    Returns the shared TariffRepository, replacing it when a different
    database path is requested.
    """
    global _default_repository
    if _default_repository is None or _default_repository.db_path != db_path:
        _default_repository = TariffRepository(db_path)
    return _default_repository


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the account, tariff_rate and green_power_surcharge tables.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS account (
                id INTEGER PRIMARY KEY,
                provider TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS tariff_rate (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id INTEGER NOT NULL REFERENCES account(id),
                tariff TEXT NOT NULL,
                rate_per_min INTEGER NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS green_power_surcharge (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id INTEGER NOT NULL REFERENCES account(id),
                perc_inc TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                only_on_tariffs TEXT
            );
        """)
        conn.commit()
    finally:
        conn.close()


def insert_account(account: Account, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert an account row."""
    conn = get_connection(db_path)
    try:
        conn.execute(
            "INSERT INTO account (id, provider) VALUES (?, ?)",
            (account.id, account.provider)
        )
        conn.commit()
    finally:
        conn.close()


def insert_tariff_rate(account_id: int, rate: RateInterval, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a rate interval for an account.

    Raises:
        ValueError: If valid_from is not before valid_until
    """
    if rate.valid_from >= rate.valid_until:
        raise ValueError("valid_from must be earlier than valid_until")

    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO tariff_rate
            (account_id, tariff, rate_per_min, start_date, end_date)
            VALUES (?, ?, ?, ?, ?)
        """, (
            account_id,
            rate.tariff_category.value,
            rate.rate_per_minute,
            rate.valid_from.isoformat(),
            rate.valid_until.isoformat()
        ))
        conn.commit()
    finally:
        conn.close()


def insert_surcharge(account_id: int, surcharge: SurchargeInterval, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a green power surcharge for an account.

    Raises:
        ValueError: If the interval is empty or the percentage is negative
    """
    if surcharge.valid_from >= surcharge.valid_until:
        raise ValueError("valid_from must be earlier than valid_until")
    if surcharge.percent_increase < 0:
        raise ValueError("percent_increase must be >= 0")

    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO green_power_surcharge
            (account_id, perc_inc, start_date, end_date, only_on_tariffs)
            VALUES (?, ?, ?, ?, ?)
        """, (
            account_id,
            str(surcharge.percent_increase),
            surcharge.valid_from.isoformat(),
            surcharge.valid_until.isoformat(),
            _encode_tariffs(surcharge.applies_to)
        ))
        conn.commit()
    finally:
        conn.close()
