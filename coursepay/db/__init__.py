"""Database module - async MySQL engine and session management."""

from coursepay.db.engine import Database, get_db

__all__ = [
    "Database",
    "get_db",
]
