"""Asset storage configuration via environment variables."""

from typing import Literal

from pydantic_settings import BaseSettings


class StorageSettings(BaseSettings):
    model_config = {"env_prefix": "STORAGE_"}

    backend: Literal["local", "minio"] = "local"

    # Local filesystem backend, served by the gateway under public_url_prefix
    local_dir: str = "backend/media/avatars"
    public_url_prefix: str = "/media/avatars"

    # MinIO / S3 backend
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_secure: bool = False
    minio_bucket: str = "accounts"
    folder: str = "avatars"
    public_base_url: str = "http://localhost:9000"
