"""Account authentication, session tokens, and profile management."""

from accounts.auth.cookies import SESSION_COOKIE, clear_session_cookie, set_session_cookie
from accounts.auth.errors import (
    AlreadyExistsError,
    AlreadyTakenError,
    AuthError,
    InvalidCredentialsError,
    InvalidTokenError,
    NoFieldsToUpdateError,
    StorageUnavailableError,
    UnauthenticatedError,
    ValidationFailedError,
)
from accounts.auth.models import Account, AccountChanges, ImageUpload, PublicProfile, SessionToken
from accounts.auth.password import PasswordHasher, get_hasher
from accounts.auth.profile import ProfileService
from accounts.auth.service import AuthService
from accounts.auth.settings import AuthSettings
from accounts.auth.tokens import SESSION_TTL_SECONDS, issue_session_token, verify_session_token

__all__ = [
    "SESSION_COOKIE",
    "SESSION_TTL_SECONDS",
    "Account",
    "AccountChanges",
    "AlreadyExistsError",
    "AlreadyTakenError",
    "AuthError",
    "AuthService",
    "AuthSettings",
    "ImageUpload",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "NoFieldsToUpdateError",
    "PasswordHasher",
    "ProfileService",
    "PublicProfile",
    "SessionToken",
    "StorageUnavailableError",
    "UnauthenticatedError",
    "ValidationFailedError",
    "clear_session_cookie",
    "get_hasher",
    "issue_session_token",
    "set_session_cookie",
    "verify_session_token",
]
