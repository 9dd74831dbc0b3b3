"""Root conftest: load test environment variables, configure structlog, and share an in-memory asset store."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from accounts.logging import configure_structlog
from accounts.storage.base import AssetStoreError, StoredAsset, extension_for

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# Route structlog through stdlib logging so caplog sees events.
configure_structlog()


class FakeAssetStore:
    """In-memory AssetStore recording uploads and deletes.

    Set ``fail_upload`` or ``fail_delete`` to make the next calls raise AssetStoreError.
    """

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_upload = False
        self.fail_delete = False
        self._counter = 0

    async def upload(self, content: bytes, content_type: str) -> StoredAsset:
        if self.fail_upload:
            raise AssetStoreError("upload refused")
        self._counter += 1
        asset_id = f"avatars/asset-{self._counter}{extension_for(content_type)}"
        self.objects[asset_id] = content
        self.uploaded.append(asset_id)
        return StoredAsset(url=f"https://cdn.test/{asset_id}", asset_id=asset_id)

    async def delete(self, asset_id: str) -> None:
        if self.fail_delete:
            raise AssetStoreError("delete refused")
        self.objects.pop(asset_id, None)
        self.deleted.append(asset_id)


@pytest.fixture
def asset_store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Prevent context leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
