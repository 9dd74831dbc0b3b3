"""SQLite-backed account repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from accounts.auth.models import Account
from accounts.dal.account_repository import AccountRepository, DuplicateAccountError, RepositoryError

if TYPE_CHECKING:
    from accounts.auth.models import AccountChanges
    from accounts.db.connection import Database

logger = structlog.get_logger()

_SELECT_ACCOUNT = (
    "SELECT id AS account_id, username, email, password_hash, avatar_url, avatar_asset_id, created_at FROM accounts"
)

# Columns an update-by-id may touch; everything else is immutable after insert.
_UPDATABLE_COLUMNS = ("username", "email", "avatar_url", "avatar_asset_id")


class SqliteAccountRepository(AccountRepository):
    """SQLite implementation of AccountRepository.

    Writes run under an asyncio lock and rely on the unique indexes on
    username and email. IntegrityError is mapped to DuplicateAccountError;
    every other sqlite3 error becomes RepositoryError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def find_by_identity(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
        exclude_id: str | None = None,
    ) -> Account | None:
        clauses: list[str] = []
        params: list[str] = []
        if username is not None:
            clauses.append("username = ? COLLATE NOCASE")
            params.append(username)
        if email is not None:
            clauses.append("email = ? COLLATE NOCASE")
            params.append(email)
        if not clauses:
            return None

        sql = f"{_SELECT_ACCOUNT} WHERE ({' OR '.join(clauses)})"
        if exclude_id is not None:
            sql += " AND id != ?"
            params.append(exclude_id)
        return self._fetch_one(f"{sql} LIMIT 1", tuple(params))

    async def get_by_email(self, email: str) -> Account | None:
        """Look up an account by email (case-insensitive)."""
        return self._fetch_one(f"{_SELECT_ACCOUNT} WHERE email = ? COLLATE NOCASE", (email,))

    async def get_by_id(self, account_id: str) -> Account | None:
        return self._fetch_one(f"{_SELECT_ACCOUNT} WHERE id = ?", (account_id,))

    async def create_account(self, account: Account) -> None:
        """Insert an account. Raises DuplicateAccountError on duplicate id, username, or email."""
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute(
                    "INSERT INTO accounts "
                    "(id, username, email, password_hash, avatar_url, avatar_asset_id, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        account.account_id,
                        account.username,
                        account.email,
                        account.password_hash,
                        account.avatar_url,
                        account.avatar_asset_id,
                        account.created_at.isoformat(),
                    ),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                raise _duplicate_error(exc, account.account_id) from exc
            except sqlite3.Error as exc:
                conn.rollback()
                raise RepositoryError("Failed to create account") from exc

    async def update_by_id(self, account_id: str, changes: AccountChanges) -> Account | None:
        """Apply the set fields of ``changes`` in one UPDATE and return the stored row."""
        columns = changes.as_columns()
        unknown = set(columns) - set(_UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")
        if not columns:
            return await self.get_by_id(account_id)

        assignments = ", ".join(f"{name} = ?" for name in columns)
        async with self._lock:
            conn = self._db.connection
            try:
                cursor = conn.execute(
                    f"UPDATE accounts SET {assignments} WHERE id = ?",  # noqa: S608 - column names are whitelisted
                    (*columns.values(), account_id),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                raise _duplicate_error(exc, account_id) from exc
            except sqlite3.Error as exc:
                conn.rollback()
                raise RepositoryError("Failed to update account") from exc
            if cursor.rowcount == 0:
                return None
            return self._fetch_one(f"{_SELECT_ACCOUNT} WHERE id = ?", (account_id,))

    def _fetch_one(self, sql: str, params: tuple[str, ...]) -> Account | None:
        try:
            row = self._db.connection.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise RepositoryError("Account lookup failed") from exc
        if row is None:
            return None
        return Account.model_validate(dict(row))


def _duplicate_error(exc: sqlite3.IntegrityError, account_id: str) -> RepositoryError:
    """Translate a unique-constraint violation into a domain error naming the field."""
    error_msg = str(exc).lower()
    if "accounts.username" in error_msg or "idx_accounts_username" in error_msg:
        return DuplicateAccountError("Username already taken", field="username")
    if "accounts.email" in error_msg or "idx_accounts_email" in error_msg:
        return DuplicateAccountError("Email already registered", field="email")
    if "accounts.id" in error_msg:
        return DuplicateAccountError(f"Account with id '{account_id}' already exists", field="id")
    logger.warning("unexpected integrity error", error=str(exc))
    return RepositoryError(str(exc))
