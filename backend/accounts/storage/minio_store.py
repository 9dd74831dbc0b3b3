"""MinIO / S3-compatible asset store."""

from __future__ import annotations

from io import BytesIO
from uuid import uuid4

import structlog
from anyio import to_thread
from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError as TransportError

from accounts.storage.base import AssetStoreError, StoredAsset, extension_for

logger = structlog.get_logger()

_MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchObject", "ResourceNotFound"}
_EXISTING_BUCKET_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}


class MinioAssetStore:
    """Store avatars as objects under ``folder`` in a MinIO bucket.

    The minio client is synchronous; every call runs off the event loop.
    Public URLs are built from ``public_base_url`` so the bucket can sit
    behind a CDN or reverse proxy.
    """

    def __init__(
        self,
        client: Minio,
        bucket: str,
        *,
        public_base_url: str,
        folder: str = "avatars",
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")
        self._folder = folder.strip("/")

    def ensure_bucket(self) -> None:
        """Create the configured bucket when it does not exist yet."""
        try:
            if self._client.bucket_exists(self._bucket):
                return
            self._client.make_bucket(self._bucket)
        except S3Error as exc:
            if exc.code not in _EXISTING_BUCKET_CODES:
                raise AssetStoreError(f"Cannot prepare bucket {self._bucket}") from exc
        except TransportError as exc:
            raise AssetStoreError(f"Cannot reach object storage for bucket {self._bucket}") from exc

    async def upload(self, content: bytes, content_type: str) -> StoredAsset:
        object_key = f"{self._folder}/{uuid4().hex}{extension_for(content_type)}"
        try:
            await to_thread.run_sync(
                lambda: self._client.put_object(
                    self._bucket,
                    object_key,
                    data=BytesIO(content),
                    length=len(content),
                    content_type=content_type,
                ),
            )
        except (S3Error, TransportError) as exc:
            raise AssetStoreError(f"Failed to upload {object_key}") from exc
        logger.info("uploaded asset", asset_id=object_key, size=len(content))
        return StoredAsset(url=f"{self._public_base_url}/{self._bucket}/{object_key}", asset_id=object_key)

    async def delete(self, asset_id: str) -> None:
        """Delete an object. Objects that are already gone are ignored."""
        try:
            await to_thread.run_sync(lambda: self._client.remove_object(self._bucket, asset_id))
        except S3Error as exc:
            if exc.code in _MISSING_OBJECT_CODES:
                return
            raise AssetStoreError(f"Failed to delete {asset_id}") from exc
        except TransportError as exc:
            raise AssetStoreError(f"Failed to delete {asset_id}") from exc
        logger.info("deleted asset", asset_id=asset_id)
