"""Auth service coordinating registration, login, and session checks."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from accounts.auth.avatars import discard_asset, upload_avatar
from accounts.auth.errors import (
    AlreadyExistsError,
    InvalidCredentialsError,
    StorageUnavailableError,
    UnauthenticatedError,
)
from accounts.auth.models import Account
from accounts.auth.validation import normalize_email, validate_email_address, validate_password, validate_username
from accounts.dal.account_repository import DuplicateAccountError, RepositoryError

if TYPE_CHECKING:
    from accounts.auth.models import ImageUpload
    from accounts.auth.password import PasswordHasher
    from accounts.dal.account_repository import AccountRepository
    from accounts.storage.base import AssetStore

logger = structlog.get_logger()


class AuthService:
    """Coordinate account registration, credential checks, and session lookups.

    Session tokens are minted by the transport after register/login return;
    the service never sees them.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        asset_store: AssetStore,
        *,
        password_hasher: PasswordHasher,
    ) -> None:
        self._account_repo = account_repo
        self._asset_store = asset_store
        self._hasher = password_hasher

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        avatar: ImageUpload | None = None,
    ) -> Account:
        """Register a new account, uploading the avatar before the record is written."""
        validate_username(username)
        normalized_email = validate_email_address(email)
        validate_password(password)
        await self._ensure_identity_available(username, normalized_email)

        stored = await upload_avatar(self._asset_store, avatar) if avatar is not None else None

        account = Account(
            account_id=str(uuid4()),
            username=username,
            email=normalized_email,
            password_hash=await self._hasher.hash(password),
            avatar_url=stored.url if stored is not None else None,
            avatar_asset_id=stored.asset_id if stored is not None else None,
        )
        try:
            await self._account_repo.create_account(account)
        except RepositoryError as exc:
            if stored is not None:
                await discard_asset(self._asset_store, stored.asset_id, reason="registration failed")
            if isinstance(exc, DuplicateAccountError):
                raise AlreadyExistsError from exc
            raise StorageUnavailableError("Error registering user") from exc

        logger.info("account registered", account_id=account.account_id, has_avatar=stored is not None)
        return account

    async def login(self, email: str, password: str) -> Account:
        """Validate credentials. Unknown email and wrong password fail identically."""
        account = await self._account_repo.get_by_email(normalize_email(email))
        if account is None:
            logger.info("login rejected")
            raise InvalidCredentialsError
        if not await self._hasher.verify(password, account.password_hash):
            logger.info("login rejected")
            raise InvalidCredentialsError
        logger.info("login succeeded", account_id=account.account_id)
        return account

    async def check_auth(self, account_id: str) -> Account:
        """Re-read the account behind a verified session so recent edits are visible."""
        account = await self._account_repo.get_by_id(account_id)
        if account is None:
            raise UnauthenticatedError
        return account

    # -- private helpers --

    async def _ensure_identity_available(self, username: str, email: str) -> None:
        """Raise AlreadyExistsError if the username or email is registered."""
        if await self._account_repo.find_by_identity(username=username, email=email) is not None:
            raise AlreadyExistsError
