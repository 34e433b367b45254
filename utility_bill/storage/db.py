"""
Database connection management.

Provides SQLite connection for account and tariff data.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "utility_bill.db"


class StorageError(Exception):
    """Raised for any failure reading account or tariff data.

    Wraps connectivity problems, missing tables and rows that do not
    match the expected schema.
    """
    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Create and return a SQLite database connection with foreign keys enabled.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection with foreign key constraints enabled
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
