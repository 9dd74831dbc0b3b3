"""Profile service: partial updates of identity fields and avatar replacement."""

from __future__ import annotations

import asyncio
import functools
from typing import TYPE_CHECKING

import structlog

from accounts.auth.avatars import discard_asset, upload_avatar
from accounts.auth.errors import (
    AlreadyTakenError,
    NoFieldsToUpdateError,
    StorageUnavailableError,
    UnauthenticatedError,
)
from accounts.auth.models import AccountChanges
from accounts.auth.validation import validate_email_address, validate_username
from accounts.dal.account_repository import DuplicateAccountError, RepositoryError

if TYPE_CHECKING:
    from accounts.auth.models import Account, ImageUpload
    from accounts.dal.account_repository import AccountRepository
    from accounts.storage.base import AssetStore, StoredAsset

logger = structlog.get_logger()


class ProfileService:
    """Apply profile edits for the acting account.

    Avatar replacement order is fixed: upload the new image, commit the
    record, then delete the old image in a background task. A failed delete
    only leaks the old object; the account never points at a missing asset.
    Call wait_for_cleanup() on shutdown so pending deletes can finish.
    """

    def __init__(self, account_repo: AccountRepository, asset_store: AssetStore) -> None:
        self._account_repo = account_repo
        self._asset_store = asset_store
        self._cleanup_tasks: set[asyncio.Task[None]] = set()

    async def update_profile(
        self,
        account_id: str,
        *,
        username: str | None = None,
        email: str | None = None,
        avatar: ImageUpload | None = None,
    ) -> Account:
        if username is None and email is None and avatar is None:
            raise NoFieldsToUpdateError

        current = await self._account_repo.get_by_id(account_id)
        if current is None:
            raise UnauthenticatedError

        changes: dict[str, str | None] = {}
        if username is not None:
            changes["username"] = validate_username(username)
        if email is not None:
            changes["email"] = validate_email_address(email)
        if changes:
            await self._ensure_identity_available(account_id, changes.get("username"), changes.get("email"))

        uploaded: StoredAsset | None = None
        previous_asset_id = current.avatar_asset_id
        if avatar is not None:
            uploaded = await upload_avatar(self._asset_store, avatar)
            changes["avatar_url"] = uploaded.url
            changes["avatar_asset_id"] = uploaded.asset_id
            previous_asset_id = await self._avatar_replaced_by(account_id, uploaded)

        updated = await self._commit(account_id, AccountChanges(**changes), uploaded)

        if uploaded is not None and previous_asset_id is not None and previous_asset_id != uploaded.asset_id:
            self._schedule_asset_cleanup(previous_asset_id)

        logger.info("profile updated", account_id=account_id, fields=sorted(changes))
        return updated

    async def wait_for_cleanup(self) -> None:
        """Wait for outstanding avatar deletions. Their failures are already logged."""
        if self._cleanup_tasks:
            await asyncio.gather(*self._cleanup_tasks, return_exceptions=True)

    @property
    def pending_cleanups(self) -> int:
        return len(self._cleanup_tasks)

    # -- private helpers --

    async def _ensure_identity_available(self, account_id: str, username: str | None, email: str | None) -> None:
        """Raise AlreadyTakenError if another account holds the username or email."""
        conflict = await self._account_repo.find_by_identity(username=username, email=email, exclude_id=account_id)
        if conflict is not None:
            raise AlreadyTakenError

    async def _avatar_replaced_by(self, account_id: str, uploaded: StoredAsset) -> str | None:
        """Re-read the record after a successful upload and return the avatar asset it still references."""
        try:
            latest = await self._account_repo.get_by_id(account_id)
        except RepositoryError as exc:
            await discard_asset(self._asset_store, uploaded.asset_id, reason="profile update failed")
            raise StorageUnavailableError("Error updating profile") from exc
        if latest is None:
            await discard_asset(self._asset_store, uploaded.asset_id, reason="account missing")
            raise UnauthenticatedError
        return latest.avatar_asset_id

    async def _commit(self, account_id: str, changes: AccountChanges, uploaded: StoredAsset | None) -> Account:
        """Write all changes at once, discarding a fresh upload if the write does not land."""
        try:
            updated = await self._account_repo.update_by_id(account_id, changes)
        except RepositoryError as exc:
            if uploaded is not None:
                await discard_asset(self._asset_store, uploaded.asset_id, reason="profile update failed")
            if isinstance(exc, DuplicateAccountError):
                raise AlreadyTakenError from exc
            raise StorageUnavailableError("Error updating profile") from exc

        if updated is None:
            # Account removed between the read and the write.
            if uploaded is not None:
                await discard_asset(self._asset_store, uploaded.asset_id, reason="account missing")
            raise UnauthenticatedError
        return updated

    def _schedule_asset_cleanup(self, asset_id: str) -> None:
        task = asyncio.create_task(self._asset_store.delete(asset_id))
        self._cleanup_tasks.add(task)
        task.add_done_callback(functools.partial(self._on_cleanup_done, asset_id))

    def _on_cleanup_done(self, asset_id: str, task: asyncio.Task[None]) -> None:
        self._cleanup_tasks.discard(task)
        if task.cancelled():
            logger.warning("replaced avatar cleanup cancelled", asset_id=asset_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("failed to delete replaced avatar", asset_id=asset_id, exc_info=exc)
            return
        logger.debug("deleted replaced avatar", asset_id=asset_id)
