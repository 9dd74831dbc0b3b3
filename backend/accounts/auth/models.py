"""Account records, their outward-safe projection, and transport payloads."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PublicProfile(BaseModel):
    """Sanitized projection of an account. Never carries secrets or asset ids."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    avatar_url: str | None = Field(default=None, serialization_alias="avatarUrl")

    def to_json(self) -> dict[str, str | None]:
        return self.model_dump(by_alias=True)


class Account(BaseModel, frozen=True):
    """Account record stored in the account repository."""

    account_id: str
    username: str
    email: str  # normalized to lowercase before storage
    password_hash: str
    avatar_url: str | None = None
    avatar_asset_id: str | None = None  # asset store id, used only to delete the avatar
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    @model_validator(mode="after")
    def _validate_account_fields(self) -> Self:
        if not self.password_hash:
            raise ValueError("Accounts must have a password hash")
        if (self.avatar_url is None) != (self.avatar_asset_id is None):
            raise ValueError("avatar_url and avatar_asset_id must be set together")
        return self

    def to_public(self) -> PublicProfile:
        return PublicProfile(
            id=self.account_id,
            username=self.username,
            email=self.email,
            avatar_url=self.avatar_url,
        )


class AccountChanges(BaseModel, frozen=True):
    """Fields applied together by a single update-by-id. Unset fields are left alone."""

    username: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    avatar_asset_id: str | None = None

    def as_columns(self) -> dict[str, str | None]:
        return self.model_dump(exclude_unset=True)


@dataclass(frozen=True)
class ImageUpload:
    """Image bytes received from the transport, already size- and type-checked."""

    content: bytes
    content_type: str
    filename: str = ""


@dataclass
class SessionToken:
    """Payload carried inside a signed session token."""

    account_id: str
    issued_at: float
    expires_at: float
