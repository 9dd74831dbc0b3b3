"""Error taxonomy for authentication and profile operations.

Every failure surfaced to callers carries a stable ``kind`` and an HTTP status
so the gateway can render it without inspecting messages.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import ClassVar


class AuthError(Exception):
    """Authentication or profile failure."""

    kind: ClassVar[str] = "AuthError"
    status_code: ClassVar[int] = HTTPStatus.BAD_REQUEST
    default_message: ClassVar[str] = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationFailedError(AuthError):
    kind = "ValidationFailed"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Validation error"


class AlreadyExistsError(AuthError):
    kind = "AlreadyExists"
    status_code = HTTPStatus.CONFLICT
    default_message = "User already exists"


class AlreadyTakenError(AuthError):
    kind = "AlreadyTaken"
    status_code = HTTPStatus.CONFLICT
    default_message = "Username or email is already taken"


class InvalidCredentialsError(AuthError):
    """Raised for both unknown emails and wrong passwords, with one message."""

    kind = "InvalidCredentials"
    status_code = HTTPStatus.UNAUTHORIZED
    default_message = "Invalid credentials"


class UnauthenticatedError(AuthError):
    kind = "Unauthenticated"
    status_code = HTTPStatus.UNAUTHORIZED
    default_message = "Not authenticated"


class InvalidTokenError(AuthError):
    kind = "InvalidToken"
    status_code = HTTPStatus.UNAUTHORIZED
    default_message = "Token is not valid"


class NoFieldsToUpdateError(AuthError):
    kind = "NoFieldsToUpdate"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "No fields to update"


class StorageUnavailableError(AuthError):
    kind = "StorageUnavailable"
    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    default_message = "Storage is temporarily unavailable"
