"""Asset storage for avatar images: contract, backends, and backend selection."""

from minio import Minio

from accounts.storage.base import AssetStore, AssetStoreError, StoredAsset
from accounts.storage.local import LocalAssetStore
from accounts.storage.minio_store import MinioAssetStore
from accounts.storage.settings import StorageSettings


def get_asset_store(settings: StorageSettings) -> LocalAssetStore | MinioAssetStore:
    """Return the asset store configured by ``settings.backend``."""
    if settings.backend == "local":
        return LocalAssetStore(settings.local_dir, public_url_prefix=settings.public_url_prefix)
    if settings.backend == "minio":
        client = Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
        )
        return MinioAssetStore(
            client,
            settings.minio_bucket,
            public_base_url=settings.public_base_url,
            folder=settings.folder,
        )
    raise ValueError(f"Unknown storage backend: {settings.backend!r}")


__all__ = [
    "AssetStore",
    "AssetStoreError",
    "LocalAssetStore",
    "MinioAssetStore",
    "StorageSettings",
    "StoredAsset",
    "get_asset_store",
]
