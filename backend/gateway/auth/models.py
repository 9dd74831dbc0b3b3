"""User model for Starlette AuthenticationMiddleware integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import BaseUser

if TYPE_CHECKING:
    from accounts.auth.models import Account


class AuthenticatedAccount(BaseUser):
    """Authenticated account for Starlette's request.user.

    Wraps the record loaded by the session backend, so handlers see the
    current username, email and avatar rather than values frozen into the token.
    """

    def __init__(self, account: Account) -> None:
        self._account = account

    @property
    def is_authenticated(self) -> bool:  # pragma: no cover
        return True

    @property
    def display_name(self) -> str:  # pragma: no cover
        return self._account.username

    @property
    def identity(self) -> str:  # pragma: no cover
        return self._account.account_id

    @property
    def account_id(self) -> str:
        return self._account.account_id

    @property
    def account(self) -> Account:
        return self._account
