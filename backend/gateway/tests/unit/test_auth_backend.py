"""Tests for the SessionCookieBackend authentication backend."""

from __future__ import annotations

import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.authentication import AuthCredentials

from accounts.auth.cookies import SESSION_COOKIE
from accounts.auth.models import Account
from accounts.auth.tokens import issue_session_token
from accounts.dal.account_repository import RepositoryError
from gateway.auth.backend import SessionCookieBackend
from gateway.auth.models import AuthenticatedAccount

SECRET = "backend-test-secret"


def _account(account_id: str = "acct-1") -> Account:
    return Account(account_id=account_id, username="alice", email="alice@example.com", password_hash="simple$x")


@pytest.fixture
def account_repo() -> MagicMock:
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=_account())
    return repo


@pytest.fixture
def backend(account_repo: MagicMock) -> SessionCookieBackend:
    return SessionCookieBackend(account_repo, SECRET)


def _conn(cookies: dict[str, str]) -> MagicMock:
    conn = MagicMock()
    conn.cookies = cookies
    return conn


class TestSessionCookieAuth:
    async def test_valid_cookie_returns_authenticated_tuple(
        self,
        backend: SessionCookieBackend,
        account_repo: MagicMock,
    ) -> None:
        conn = _conn({SESSION_COOKIE: issue_session_token("acct-1", SECRET)})

        result = await backend.authenticate(conn)

        assert result is not None
        credentials, user = result
        assert isinstance(credentials, AuthCredentials)
        assert "authenticated" in credentials.scopes
        assert isinstance(user, AuthenticatedAccount)
        assert user.account_id == "acct-1"
        assert user.account.username == "alice"
        account_repo.get_by_id.assert_awaited_once_with("acct-1")

    async def test_missing_cookie_returns_none(self, backend: SessionCookieBackend, account_repo: MagicMock) -> None:
        assert await backend.authenticate(_conn({})) is None
        account_repo.get_by_id.assert_not_called()

    async def test_garbage_cookie_returns_none(self, backend: SessionCookieBackend) -> None:
        assert await backend.authenticate(_conn({SESSION_COOKIE: "garbage"})) is None

    async def test_token_signed_with_other_secret_returns_none(self, backend: SessionCookieBackend) -> None:
        conn = _conn({SESSION_COOKIE: issue_session_token("acct-1", "other-secret")})
        assert await backend.authenticate(conn) is None

    async def test_expired_token_returns_none(self, backend: SessionCookieBackend) -> None:
        stale = issue_session_token("acct-1", SECRET, now=time.time() - 25 * 3600)
        assert await backend.authenticate(_conn({SESSION_COOKIE: stale})) is None

    async def test_deleted_account_returns_none(self, backend: SessionCookieBackend, account_repo: MagicMock) -> None:
        account_repo.get_by_id.return_value = None
        conn = _conn({SESSION_COOKIE: issue_session_token("acct-1", SECRET)})

        assert await backend.authenticate(conn) is None

    async def test_repository_failure_returns_none(
        self,
        backend: SessionCookieBackend,
        account_repo: MagicMock,
    ) -> None:
        account_repo.get_by_id.side_effect = RepositoryError("database is locked")
        conn = _conn({SESSION_COOKIE: issue_session_token("acct-1", SECRET)})

        assert await backend.authenticate(conn) is None
