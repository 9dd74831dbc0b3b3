"""SQLite database layer: connection management and repository implementations."""

from accounts.db.account_repository import SqliteAccountRepository
from accounts.db.connection import Database

__all__ = [
    "Database",
    "SqliteAccountRepository",
]
