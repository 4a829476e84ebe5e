"""Signed bearer tokens and one-time email tokens.

Access tokens are HMAC-SHA256 signed JSON payloads with an expiry, built
with the standard library only.
"""

import base64
import binascii
import hashlib
import hmac
import json
import secrets
import time
from uuid import UUID

ACCESS_TOKEN_TYPE = "access"


def create_signed_token(payload: dict, secret: str, expires_in: int) -> str:
    """Create a base64url-encoded, HMAC-signed JSON payload with expiration.

    Returns:
        URL-safe base64 string: ``base64(json_payload).base64(signature)``
    """
    payload = {**payload, "exp": int(time.time()) + expires_in}
    payload_bytes = json.dumps(payload, separators=(",", ":")).encode()
    payload_b64 = base64.urlsafe_b64encode(payload_bytes).decode()

    sig = hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).digest()
    sig_b64 = base64.urlsafe_b64encode(sig).decode()

    return f"{payload_b64}.{sig_b64}"


def verify_signed_token(token: str, secret: str) -> dict | None:
    """Verify and decode a signed token.

    Returns:
        Decoded payload dict, or ``None`` if the token is invalid, expired,
        or has been tampered with.
    """
    parts = token.split(".")
    if len(parts) != 2:
        return None

    payload_b64, sig_b64 = parts

    expected_sig = hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).digest()
    try:
        actual_sig = base64.urlsafe_b64decode(sig_b64)
    except (binascii.Error, ValueError):
        return None

    if not hmac.compare_digest(expected_sig, actual_sig):
        return None

    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (binascii.Error, ValueError):
        return None

    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or time.time() > exp:
        return None

    return payload


def create_access_token(user_id: UUID, email: str, role: str, secret: str, expires_in: int) -> str:
    return create_signed_token(
        {"sub": str(user_id), "email": email, "role": role, "type": ACCESS_TOKEN_TYPE},
        secret,
        expires_in,
    )


def read_access_token(token: str, secret: str) -> UUID | None:
    """Return the user id carried by a valid access token."""
    payload = verify_signed_token(token, secret)
    if not payload or payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        return None


def generate_email_token() -> str:
    """Random token for email verification and password reset links."""
    return secrets.token_hex(32)
