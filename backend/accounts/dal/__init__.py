"""Data access layer: repository interfaces and their error types."""

from accounts.dal.account_repository import AccountRepository, DuplicateAccountError, RepositoryError

__all__ = [
    "AccountRepository",
    "DuplicateAccountError",
    "RepositoryError",
]
