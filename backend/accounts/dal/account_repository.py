"""Abstract interface for account persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from accounts.auth.models import Account, AccountChanges


class RepositoryError(Exception):
    """Account storage failed or is unreachable."""


class DuplicateAccountError(RepositoryError):
    """A write violated the uniqueness constraint on id, username, or email."""

    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.field = field


class AccountRepository(ABC):
    """Abstract interface for account persistence.

    Implementations must enforce uniqueness of username and email themselves
    (a unique index or equivalent) and report violations as
    DuplicateAccountError. Callers may pre-check with find_by_identity, but
    that check can lose a race against a concurrent writer.
    """

    @abstractmethod
    async def find_by_identity(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
        exclude_id: str | None = None,
    ) -> Account | None:
        """Return any account whose username or email matches, skipping ``exclude_id``."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Account | None: ...

    @abstractmethod
    async def get_by_id(self, account_id: str) -> Account | None: ...

    @abstractmethod
    async def create_account(self, account: Account) -> None: ...

    @abstractmethod
    async def update_by_id(self, account_id: str, changes: AccountChanges) -> Account | None:
        """Apply all changes in one atomic write. Return the updated account, or None if missing."""
