"""Name sanitising helpers: folder slugs, usernames and initials."""

import hashlib
import re
import secrets
from collections.abc import Callable

SLUG_PREFIX_LENGTH = 20
SUFFIX_LENGTH = 4

_DISALLOWED = re.compile(r"[^a-z0-9]")
_SUFFIX = re.compile(r"^[0-9a-f]{4}$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def random_suffix() -> str:
    """Four lowercase hex characters from a cryptographic source."""
    return secrets.token_hex(SUFFIX_LENGTH // 2)


def identifier_suffix(identifier: object) -> str:
    """Deterministic four hex characters derived from an identifier."""
    return hashlib.sha256(str(identifier).encode()).hexdigest()[:SUFFIX_LENGTH]


def sanitize_name(text: str | None, max_length: int | None = SLUG_PREFIX_LENGTH) -> str:
    """Lower-case *text* and strip everything outside ``[a-z0-9]``."""
    cleaned = _DISALLOWED.sub("", (text or "").lower())
    if max_length is not None:
        cleaned = cleaned[:max_length]
    return cleaned


def generate_slug(
    display_name: str | None,
    suffix: str | None = None,
    token_factory: Callable[[], str] = random_suffix,
) -> str:
    """Derive a folder slug such as ``janedoe-3f9a`` from a display name.

    The slug is ``sanitize_name(display_name)`` followed by ``-`` and a
    four character hex suffix. The suffix is taken from *suffix* when given,
    otherwise from *token_factory*. Uniqueness is not checked here.
    """
    suffix = suffix if suffix is not None else token_factory()
    if not _SUFFIX.match(suffix):
        raise ValueError(f"Slug suffix must be {SUFFIX_LENGTH} lowercase hex characters: {suffix!r}")
    return f"{sanitize_name(display_name)}-{suffix}"


def username_from_email(email: str) -> str:
    local_part = email.split("@", 1)[0]
    return sanitize_name(local_part, max_length=None)


def generate_initials(name: str | None) -> str:
    """Up to two upper-case initials, ``"U"`` when nothing usable is left."""
    words = [word for word in (name or "").split() if word]
    if not words:
        return "U"
    if len(words) == 1:
        return words[0][0].upper()
    return (words[0][0] + words[-1][0]).upper()


def is_valid_email(email: str | None) -> bool:
    return bool(email and _EMAIL.match(email))
