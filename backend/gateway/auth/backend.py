"""Starlette AuthenticationBackend that validates signed session cookies."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.authentication import AuthCredentials, AuthenticationBackend

from accounts.auth.cookies import SESSION_COOKIE
from accounts.auth.errors import InvalidTokenError
from accounts.auth.tokens import verify_session_token
from accounts.dal.account_repository import RepositoryError
from gateway.auth.models import AuthenticatedAccount

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from accounts.dal.account_repository import AccountRepository

logger = structlog.get_logger()


class SessionCookieBackend(AuthenticationBackend):
    """Authenticate requests from the session cookie.

    A request is authenticated only when the cookie is present, the token
    verifies against the secret, and the account it names still exists.
    Any failed step leaves the request anonymous; protected routes then
    answer one uniform 401.
    """

    def __init__(self, account_repo: AccountRepository, token_secret: str) -> None:
        self._account_repo = account_repo
        self._token_secret = token_secret

    async def authenticate(
        self,
        conn: HTTPConnection,
    ) -> tuple[AuthCredentials, AuthenticatedAccount] | None:
        raw_token = conn.cookies.get(SESSION_COOKIE)
        if not raw_token:
            return None

        try:
            token = verify_session_token(raw_token, self._token_secret)
        except InvalidTokenError as exc:
            logger.debug("session token rejected", reason=exc.message)
            return None

        try:
            account = await self._account_repo.get_by_id(token.account_id)
        except RepositoryError as exc:
            logger.warning("session account lookup failed", account_id=token.account_id, exc_info=exc)
            return None

        if account is None:
            logger.info("session token names a missing account", account_id=token.account_id)
            return None

        return AuthCredentials(["authenticated"]), AuthenticatedAccount(account)
