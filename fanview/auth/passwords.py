"""Utilities for password hashing and verification."""

from __future__ import annotations

import secrets
import string

import bcrypt

# bcrypt only looks at the first 72 bytes
_MAX_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash plain text password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8")[:_MAX_BYTES], bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8")[:_MAX_BYTES], hashed_password.encode("utf-8"))
    except ValueError:
        return False


def generate_temporary_password(length: int = 12) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


__all__ = ["generate_temporary_password", "hash_password", "verify_password"]
