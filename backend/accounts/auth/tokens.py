"""HMAC-SHA256 signed session tokens.

Tokens are stateless: the signature and expiry are the only proof of a
session. There is no server-side session table, so a token stays valid until
it expires even after the client drops the cookie on logout.

Token format: base64url(json_payload_bytes).base64url(hmac_sha256_signature), unpadded
"""

import base64
import binascii
import hashlib
import hmac
import json
import math
import time
from dataclasses import asdict

import structlog

from accounts.auth.errors import InvalidTokenError
from accounts.auth.models import SessionToken

logger = structlog.get_logger()

_TOKEN_PARTS = 2  # base64url(payload).base64url(signature)

SESSION_TTL_SECONDS = 86400  # 24 hours
CLOCK_SKEW_SECONDS = 60


def issue_session_token(account_id: str, secret: str, *, now: float | None = None) -> str:
    """Mint a token for an account, valid for SESSION_TTL_SECONDS from ``now``."""
    issued_at = time.time() if now is None else now
    token = SessionToken(
        account_id=account_id,
        issued_at=issued_at,
        expires_at=issued_at + SESSION_TTL_SECONDS,
    )
    return sign_session_token(token, secret)


def sign_session_token(token: SessionToken, secret: str) -> str:
    """Serialize the payload to JSON, compute HMAC-SHA256, return payload.signature."""
    payload_bytes = json.dumps(asdict(token), sort_keys=True).encode()
    sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    return f"{_b64encode(payload_bytes)}.{_b64encode(sig)}"


def verify_session_token(token: str, secret: str, *, now: float | None = None) -> SessionToken:
    """Verify signature and expiry. Raises InvalidTokenError on any failure."""
    parts = token.split(".")
    if len(parts) != _TOKEN_PARTS:
        raise InvalidTokenError

    try:
        payload_bytes = _b64decode(parts[0])
        provided_sig = _b64decode(parts[1])
    except (ValueError, binascii.Error) as exc:
        raise InvalidTokenError from exc

    expected_sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    if not hmac.compare_digest(provided_sig, expected_sig):
        logger.debug("session token signature mismatch")
        raise InvalidTokenError

    try:
        data = json.loads(payload_bytes)
        payload = SessionToken(**data)
    except (ValueError, TypeError) as exc:
        logger.debug("session token malformed payload")
        raise InvalidTokenError from exc

    if not isinstance(payload.account_id, str) or not payload.account_id:
        logger.debug("session token missing account id")
        raise InvalidTokenError

    if not _validate_token_timestamps(payload, time.time() if now is None else now):
        raise InvalidTokenError

    return payload


def _b64encode(raw: bytes) -> str:
    # Unpadded so the token is a bare cookie value.
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _b64decode(part: str) -> bytes:
    return base64.urlsafe_b64decode(part + "=" * (-len(part) % 4))


def _is_finite_number(value: object) -> bool:
    """Check that a value is a finite int or float (excluding bool)."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate_token_timestamps(token: SessionToken, now: float) -> bool:
    """Validate temporal claims on a session token.

    Checks: both timestamps are finite numbers, issued_at is not in the future
    (with clock skew tolerance), expires_at is after issued_at, the token
    lifetime does not exceed the session TTL, and the token has not expired.
    """
    if not _is_finite_number(token.issued_at) or not _is_finite_number(token.expires_at):
        logger.debug("session token non-finite timestamp")
        return False

    if token.issued_at > now + CLOCK_SKEW_SECONDS:
        logger.debug("session token issued in the future")
        return False

    if token.expires_at <= token.issued_at:
        logger.debug("session token expires_at <= issued_at")
        return False

    if token.expires_at - token.issued_at > SESSION_TTL_SECONDS + CLOCK_SKEW_SECONDS:
        logger.debug("session token lifetime too long")
        return False

    if now > token.expires_at:
        logger.debug("session token expired")
        return False

    return True
