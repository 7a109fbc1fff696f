"""Database layer for expensekit application."""

from expensekit.database.base import Database
from expensekit.database.factories import create_sqlite_database
from expensekit.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_sqlite_database"]
