"""Avatar processing, upload and best-effort removal against the asset store."""

from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING

import anyio.to_thread
import structlog
from PIL import Image, ImageOps

from accounts.auth.errors import StorageUnavailableError, ValidationFailedError
from accounts.storage.base import AssetStoreError

if TYPE_CHECKING:
    from accounts.auth.models import ImageUpload
    from accounts.storage.base import AssetStore, StoredAsset

logger = structlog.get_logger()

MAX_AVATAR_DIMENSION = 800

# Decoded image formats accepted as avatars and the content type they are stored with.
AVATAR_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


def process_avatar_bytes(data: bytes) -> tuple[bytes, str]:
    """Decode an avatar, fit it within MAX_AVATAR_DIMENSION square and re-encode it.

    The orientation tag is applied to the pixels, then all metadata (EXIF, GPS,
    comments, colour profiles) is dropped. Animated images keep their first
    frame. Returns the new bytes and their content type.
    """
    try:
        with Image.open(BytesIO(data)) as source:
            image_format = source.format
            source.load()
            image = ImageOps.exif_transpose(source)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ValidationFailedError("Profile picture is not a valid image") from exc

    content_type = AVATAR_FORMATS.get(image_format or "")
    if content_type is None:
        raise ValidationFailedError("Only image files are allowed!")

    image.thumbnail((MAX_AVATAR_DIMENSION, MAX_AVATAR_DIMENSION))
    if image_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    image.info = {key: value for key, value in image.info.items() if key == "transparency"}

    output = BytesIO()
    image.save(output, format=image_format)
    return output.getvalue(), content_type


async def upload_avatar(asset_store: AssetStore, image: ImageUpload) -> StoredAsset:
    """Process and upload an avatar.

    Undecodable images raise ValidationFailedError before anything is stored.
    Store failures map to StorageUnavailableError.
    """
    content, content_type = await anyio.to_thread.run_sync(process_avatar_bytes, image.content)
    try:
        return await asset_store.upload(content, content_type)
    except AssetStoreError as exc:
        logger.warning("avatar upload failed", content_type=content_type, size=len(content), exc_info=exc)
        raise StorageUnavailableError("Could not store the profile picture") from exc


async def discard_asset(asset_store: AssetStore, asset_id: str, *, reason: str) -> None:
    """Delete an asset that no account references. Failures are logged, never raised."""
    try:
        await asset_store.delete(asset_id)
    except AssetStoreError as exc:
        logger.warning("failed to discard asset", asset_id=asset_id, reason=reason, exc_info=exc)
