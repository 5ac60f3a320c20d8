"""Username rules: the public card lives at /businesscard/<username>."""
from __future__ import annotations

import re

USERNAME_PATTERN = re.compile(r"[a-z0-9_-]{3,30}")
RESERVED_USERNAMES = {
    "admin",
    "signin",
    "signup",
    "logout",
    "reset",
    "reset-password",
    "static",
}


def normalize_username(value: str | None) -> str:
    return (value or "").strip().lower()


def is_valid_username(value: str | None) -> bool:
    """Return True when the username matches the allowed pattern and is not reserved."""
    if not value:
        return False
    return bool(USERNAME_PATTERN.fullmatch(value)) and value not in RESERVED_USERNAMES


def username_from_email(email: str, principal_id: str) -> str:
    """Derive a username for an account created on first login."""
    local = normalize_username((email or "").split("@", 1)[0])
    candidate = re.sub(r"[^a-z0-9_-]", "-", local)[:30]
    if is_valid_username(candidate):
        return candidate
    return fallback_username(principal_id)


def fallback_username(principal_id: str) -> str:
    return f"user_{(principal_id or '').replace('-', '')[:8]}"
