"""Asset store contract for avatar images."""

from dataclasses import dataclass
from typing import Protocol

# Extensions used for stored objects, keyed by content type.
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class AssetStoreError(Exception):
    """Upload or delete against the asset store failed."""


@dataclass(frozen=True)
class StoredAsset:
    """Result of a successful upload: a public URL and the id needed to delete it."""

    url: str
    asset_id: str


class AssetStore(Protocol):
    """Protocol for storing avatar images outside the account repository."""

    async def upload(self, content: bytes, content_type: str) -> StoredAsset: ...

    async def delete(self, asset_id: str) -> None: ...


def extension_for(content_type: str) -> str:
    return CONTENT_TYPE_EXTENSIONS.get(content_type.lower(), ".bin")
