"""Tests for signed session tokens."""

import base64
import hashlib
import hmac
import json
import time

import pytest

from accounts.auth.errors import InvalidTokenError
from accounts.auth.models import SessionToken
from accounts.auth.tokens import (
    CLOCK_SKEW_SECONDS,
    SESSION_TTL_SECONDS,
    issue_session_token,
    sign_session_token,
    verify_session_token,
)

SECRET = "test-hmac-secret"
T0 = 1_700_000_000.0


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _forge(payload: dict, secret: str = SECRET) -> str:
    """Sign an arbitrary payload, bypassing SessionToken construction."""
    payload_bytes = json.dumps(payload).encode()
    sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    return f"{_b64(payload_bytes)}.{_b64(sig)}"


class TestValidityWindow:
    def test_token_carries_account_and_24h_expiry(self):
        token = verify_session_token(issue_session_token("acct-1", SECRET, now=T0), SECRET, now=T0)

        assert token.account_id == "acct-1"
        assert token.issued_at == T0
        assert token.expires_at == T0 + SESSION_TTL_SECONDS

    def test_accepted_one_hour_after_issue(self):
        raw = issue_session_token("acct-1", SECRET, now=T0)
        assert verify_session_token(raw, SECRET, now=T0 + 3600).account_id == "acct-1"

    def test_accepted_at_expiry_boundary(self):
        raw = issue_session_token("acct-1", SECRET, now=T0)
        assert verify_session_token(raw, SECRET, now=T0 + SESSION_TTL_SECONDS).account_id == "acct-1"

    def test_rejected_twenty_five_hours_after_issue(self):
        raw = issue_session_token("acct-1", SECRET, now=T0)
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, SECRET, now=T0 + 25 * 3600)

    def test_defaults_to_wall_clock(self):
        raw = issue_session_token("acct-1", SECRET)
        token = verify_session_token(raw, SECRET)
        assert token.issued_at <= time.time()

    def test_each_issue_is_independent(self):
        first = issue_session_token("acct-1", SECRET, now=T0)
        second = issue_session_token("acct-1", SECRET, now=T0 + 5)

        assert first != second
        assert verify_session_token(first, SECRET, now=T0 + 10).account_id == "acct-1"
        assert verify_session_token(second, SECRET, now=T0 + 10).account_id == "acct-1"

    def test_token_is_cookie_safe(self):
        raw = issue_session_token("acct-1", SECRET, now=T0)
        assert "=" not in raw
        assert raw.count(".") == 1


class TestTampering:
    def test_wrong_secret_rejected(self):
        raw = issue_session_token("acct-1", SECRET, now=T0)
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, "other-secret", now=T0)

    def test_modified_payload_rejected(self):
        raw = issue_session_token("acct-1", SECRET, now=T0)
        _, sig = raw.split(".")
        forged_payload = _b64(json.dumps({"account_id": "acct-2", "issued_at": T0, "expires_at": T0 + 60}).encode())
        with pytest.raises(InvalidTokenError):
            verify_session_token(f"{forged_payload}.{sig}", SECRET, now=T0)

    @pytest.mark.parametrize("raw", ["", "no-dot", "a.b.c", "!!!.???", "é.é"])
    def test_malformed_tokens_rejected(self, raw):
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, SECRET, now=T0)

    def test_signed_garbage_payload_rejected(self):
        payload_bytes = b"not json"
        sig = hmac.new(SECRET.encode(), payload_bytes, hashlib.sha256).digest()
        with pytest.raises(InvalidTokenError):
            verify_session_token(f"{_b64(payload_bytes)}.{_b64(sig)}", SECRET, now=T0)

    def test_signed_payload_missing_fields_rejected(self):
        with pytest.raises(InvalidTokenError):
            verify_session_token(_forge({"account_id": "acct-1"}), SECRET, now=T0)

    def test_empty_account_id_rejected(self):
        raw = _forge({"account_id": "", "issued_at": T0, "expires_at": T0 + 60})
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, SECRET, now=T0)


class TestTimestampClaims:
    def test_issued_in_future_beyond_skew_rejected(self):
        issued = T0 + CLOCK_SKEW_SECONDS + 10
        raw = sign_session_token(SessionToken("acct-1", issued, issued + 60), SECRET)
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, SECRET, now=T0)

    def test_small_clock_skew_tolerated(self):
        issued = T0 + CLOCK_SKEW_SECONDS - 10
        raw = sign_session_token(SessionToken("acct-1", issued, issued + 60), SECRET)
        assert verify_session_token(raw, SECRET, now=T0).account_id == "acct-1"

    def test_lifetime_longer_than_ttl_rejected(self):
        raw = sign_session_token(SessionToken("acct-1", T0, T0 + 2 * SESSION_TTL_SECONDS), SECRET)
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, SECRET, now=T0)

    def test_expiry_before_issue_rejected(self):
        raw = sign_session_token(SessionToken("acct-1", T0, T0 - 1), SECRET)
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, SECRET, now=T0)

    @pytest.mark.parametrize("bad", ["soon", True, None])
    def test_non_numeric_timestamps_rejected(self, bad):
        raw = _forge({"account_id": "acct-1", "issued_at": T0, "expires_at": bad})
        with pytest.raises(InvalidTokenError):
            verify_session_token(raw, SECRET, now=T0)
