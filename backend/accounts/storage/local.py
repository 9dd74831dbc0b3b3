"""Filesystem asset store for development and single-host deployments.

Files are written with owner-only permissions (0o600) inside an owner-only
directory (0o700) and served by the gateway under ``public_url_prefix``.
"""

import contextlib
import os
import tempfile
from pathlib import Path
from uuid import uuid4

import structlog
from anyio import to_thread

from accounts.storage.base import AssetStoreError, StoredAsset, extension_for

logger = structlog.get_logger()

_ASSET_DIR_MODE = 0o700
_ASSET_FILE_MODE = 0o600


class LocalAssetStore:
    """Writes avatar files atomically to a local directory."""

    def __init__(self, root_dir: str, public_url_prefix: str = "/media") -> None:
        self._root_dir = Path(root_dir).resolve()
        self._public_url_prefix = public_url_prefix.rstrip("/")

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    async def upload(self, content: bytes, content_type: str) -> StoredAsset:
        asset_id = f"{uuid4().hex}{extension_for(content_type)}"
        try:
            await to_thread.run_sync(self._write, asset_id, content)
        except OSError as exc:
            raise AssetStoreError(f"Failed to store asset {asset_id}") from exc
        logger.info("stored asset", asset_id=asset_id, size=len(content))
        return StoredAsset(url=f"{self._public_url_prefix}/{asset_id}", asset_id=asset_id)

    async def delete(self, asset_id: str) -> None:
        """Remove an asset. Missing files are ignored."""
        target = self._resolve(asset_id)
        try:
            await to_thread.run_sync(lambda: target.unlink(missing_ok=True))
        except OSError as exc:
            raise AssetStoreError(f"Failed to delete asset {asset_id}") from exc
        logger.info("deleted asset", asset_id=asset_id)

    def _resolve(self, asset_id: str) -> Path:
        target = (self._root_dir / asset_id).resolve()
        if target.parent != self._root_dir:
            raise AssetStoreError(f"Path traversal rejected: '{asset_id}' resolves outside asset directory")
        return target

    def _write(self, asset_id: str, content: bytes) -> None:
        """Write via temp-file-then-rename so readers never see a partial image."""
        target = self._resolve(asset_id)
        self._root_dir.mkdir(mode=_ASSET_DIR_MODE, parents=True, exist_ok=True)
        self._root_dir.chmod(_ASSET_DIR_MODE)

        fd, tmp_path = tempfile.mkstemp(dir=str(self._root_dir), suffix=".tmp", prefix=".asset_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _ASSET_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
