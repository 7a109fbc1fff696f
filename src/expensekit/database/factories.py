"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from expensekit.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "EXPENSEKIT_DB_PATH"


def default_database_path() -> Path:
    """Ledger file location when no path is given.

    ``EXPENSEKIT_DB_PATH`` if set, otherwise ``~/.expensekit/expensekit.db``.
    """
    configured = os.environ.get(DB_PATH_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".expensekit" / "expensekit.db"


def create_sqlite_database(database_path: Optional[str | Path] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Missing parent directories are created, so a fresh ``--db-path`` works.

    Args:
        database_path: Path to SQLite database file. If None, uses
            default_database_path()

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    path = Path(database_path).expanduser() if database_path is not None else default_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return SQLAlchemyDatabase(f"sqlite:///{path}")
