"""Database layer for lexbill application."""

from lexbill.database.base import Database
from lexbill.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
