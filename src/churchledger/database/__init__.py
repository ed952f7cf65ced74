"""Database layer for churchledger application."""

from churchledger.database.base import Database
from churchledger.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
