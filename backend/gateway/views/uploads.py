"""Request body parsing for account endpoints: JSON, url-encoded, or multipart with an avatar."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from accounts.auth.errors import ValidationFailedError
from accounts.auth.models import ImageUpload

if TYPE_CHECKING:
    from starlette.datastructures import FormData
    from starlette.requests import Request

AVATAR_FIELD = "profilePic"
MAX_AVATAR_BYTES = 5 * 1024 * 1024

# Accepted file extensions and the content type stored for each.
AVATAR_EXTENSIONS = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

_FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


@dataclass
class AccountForm:
    """Text fields and the optional avatar parsed from one request."""

    fields: dict[str, str] = field(default_factory=dict)
    avatar: ImageUpload | None = None

    def get(self, name: str) -> str | None:
        return self.fields.get(name)


async def parse_account_form(request: Request, *, allow_avatar: bool = True) -> AccountForm:
    """Parse the request body into text fields and an optional avatar.

    Raises ValidationFailedError for malformed bodies, non-string fields, or
    an avatar that breaks the upload rules.
    """
    content_type = request.headers.get("content-type", "").lower()
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        return await _from_json(request)

    try:
        form = await request.form()
    except HTTPException as e:
        # Oversized parts, too many fields or a broken multipart body.
        raise ValidationFailedError(str(e.detail)) from e
    except MultiPartException as e:
        raise ValidationFailedError(e.message) from e
    try:
        return await _from_form(form, allow_avatar=allow_avatar)
    finally:
        await form.close()


async def _from_json(request: Request) -> AccountForm:
    raw_body = await request.body()
    if not raw_body.strip():
        return AccountForm()
    try:
        body = json.loads(raw_body)
    except ValueError as e:
        raise ValidationFailedError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise ValidationFailedError("Request body must be a JSON object")

    fields: dict[str, str] = {}
    for name, value in body.items():
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationFailedError(f"{name} must be a string")
        fields[name] = value
    return AccountForm(fields=fields)


async def _from_form(form: FormData, *, allow_avatar: bool) -> AccountForm:
    result = AccountForm()
    for name, value in form.multi_items():
        if name == AVATAR_FIELD:
            continue
        if isinstance(value, UploadFile):
            raise ValidationFailedError(f"{name} must be a text field")
        result.fields[name] = value

    files = [item for item in form.getlist(AVATAR_FIELD) if not _is_empty_file_input(item)]
    if not files:
        return result
    if not allow_avatar:
        raise ValidationFailedError("File uploads are not accepted here")
    if len(files) > 1:
        raise ValidationFailedError("Only one profile picture may be uploaded")
    upload = files[0]
    if not isinstance(upload, UploadFile):
        raise ValidationFailedError(f"{AVATAR_FIELD} must be a file")
    result.avatar = await read_avatar(upload)
    return result


def _is_empty_file_input(item: UploadFile | str) -> bool:
    """Browsers send an empty part with no filename when no file was picked."""
    if isinstance(item, UploadFile):
        return not item.filename and not item.size
    return item == ""


def avatar_content_type(filename: str) -> str:
    """Return the stored content type for an avatar filename, or raise if the extension is not allowed."""
    extension = PurePath(filename).suffix.lower()
    content_type = AVATAR_EXTENSIONS.get(extension)
    if content_type is None:
        raise ValidationFailedError("Only image files are allowed!")
    return content_type


async def read_avatar(upload: UploadFile) -> ImageUpload:
    """Read an uploaded avatar, enforcing the extension allowlist and the size cap."""
    filename = upload.filename or ""
    content_type = avatar_content_type(filename)
    # One byte past the cap is enough to tell an oversized file apart.
    content = await upload.read(MAX_AVATAR_BYTES + 1)
    if len(content) > MAX_AVATAR_BYTES:
        raise ValidationFailedError("Profile picture must be 5 MB or smaller")
    if not content:
        raise ValidationFailedError("Profile picture is empty")
    return ImageUpload(content=content, content_type=content_type, filename=filename)
