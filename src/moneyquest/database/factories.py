"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from moneyquest.database.sqlalchemy_db import SQLAlchemyDatabase


def default_database_path() -> str:
    """Return MONEYQUEST_DB_PATH, or ~/.moneyquest/moneyquest.db when unset."""
    env_path = os.environ.get("MONEYQUEST_DB_PATH")
    if env_path:
        return env_path
    db_dir = Path.home() / ".moneyquest"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "moneyquest.db")


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks the
            MONEYQUEST_DB_PATH environment variable, then defaults to
            ~/.moneyquest/moneyquest.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = default_database_path()
    return SQLAlchemyDatabase(f"sqlite:///{database_path}")
