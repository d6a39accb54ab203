"""Database layer for moneyquest."""

from moneyquest.database.base import Database
from moneyquest.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
