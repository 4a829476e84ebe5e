"""Tests for the bearer token signing module."""

import time
from unittest.mock import patch
from uuid import uuid4

from fanview.auth.tokens import (
    create_access_token,
    create_signed_token,
    generate_email_token,
    read_access_token,
    verify_signed_token,
)


class TestCreateSignedToken:
    def test_creates_token_string(self):
        token = create_signed_token({"sub": "123"}, "secret", 300)
        assert isinstance(token, str)
        assert "." in token

    def test_token_has_two_parts(self):
        token = create_signed_token({"foo": "bar"}, "secret", 300)
        assert len(token.split(".")) == 2


class TestVerifySignedToken:
    def test_valid_token(self):
        token = create_signed_token({"sub": "123", "type": "access"}, "secret", 300)
        payload = verify_signed_token(token, "secret")
        assert payload is not None
        assert payload["sub"] == "123"
        assert "exp" in payload

    def test_wrong_secret_returns_none(self):
        token = create_signed_token({"sub": "123"}, "secret", 300)
        assert verify_signed_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_signed_token({"sub": "123"}, "secret", 1)
        with patch("fanview.auth.tokens.time") as mock_time:
            mock_time.time.return_value = time.time() + 10
            assert verify_signed_token(token, "secret") is None

    def test_tampered_payload_returns_none(self):
        token = create_signed_token({"sub": "123"}, "secret", 300)
        parts = token.split(".")
        tampered = "x" + parts[0][1:]
        assert verify_signed_token(f"{tampered}.{parts[1]}", "secret") is None

    def test_malformed_token_returns_none(self):
        assert verify_signed_token("not-a-token", "secret") is None
        assert verify_signed_token("", "secret") is None
        assert verify_signed_token("a.b.c", "secret") is None
        assert verify_signed_token("a.!!!", "secret") is None


class TestAccessToken:
    def test_round_trip(self):
        user_id = uuid4()
        token = create_access_token(user_id, "fan@example.com", "user", "secret", 300)
        assert read_access_token(token, "secret") == user_id

    def test_carries_email_and_role(self):
        token = create_access_token(uuid4(), "fan@example.com", "admin", "secret", 300)
        payload = verify_signed_token(token, "secret")
        assert payload["email"] == "fan@example.com"
        assert payload["role"] == "admin"

    def test_other_token_types_rejected(self):
        token = create_signed_token({"sub": str(uuid4()), "type": "reset"}, "secret", 300)
        assert read_access_token(token, "secret") is None

    def test_non_uuid_subject_rejected(self):
        token = create_signed_token({"sub": "not-a-uuid", "type": "access"}, "secret", 300)
        assert read_access_token(token, "secret") is None


def test_email_tokens_are_unique_hex():
    first, second = generate_email_token(), generate_email_token()
    assert first != second
    assert len(first) == 64
    int(first, 16)
