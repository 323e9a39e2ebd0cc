"""SQLite persistence for banks, sessions, grades and question statistics."""

from remaimber.db.database import Database
from remaimber.db.store import SQLiteStore, Store

__all__ = ["Database", "SQLiteStore", "Store"]
