"""Field rules for account identity and credentials."""

import re

from email_validator import EmailNotValidError, validate_email

from accounts.auth.errors import ValidationFailedError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

EMAIL_MAX_LENGTH = 255

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt truncates at 72 bytes


def normalize_email(value: str) -> str:
    return value.strip().lower()


def validate_username(username: str) -> str:
    """Validate username: 3-30 chars, alphanumeric + underscores."""
    if not username:
        raise ValidationFailedError("Username is required")
    if len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH:
        raise ValidationFailedError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
        )
    if not USERNAME_PATTERN.match(username):
        raise ValidationFailedError("Username must contain only letters, numbers, and underscores")
    return username


def validate_email_address(email: str) -> str:
    """Validate email syntax and return the normalized (lowercased) address."""
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationFailedError("Email is required")
    if len(normalized) > EMAIL_MAX_LENGTH:
        raise ValidationFailedError(f"Email must not exceed {EMAIL_MAX_LENGTH} characters")
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationFailedError(f"Invalid email address: {e}") from e
    return normalized


def validate_password(password: str) -> None:
    """Validate password: 8-72 chars, max 72 UTF-8 bytes (bcrypt limit)."""
    if not password:
        raise ValidationFailedError("Password is required")
    if len(password) < PASSWORD_MIN_LENGTH or len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationFailedError(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
        )
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise ValidationFailedError(f"Password must not exceed {PASSWORD_MAX_LENGTH} bytes when encoded")
