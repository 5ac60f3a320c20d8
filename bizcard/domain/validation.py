"""Form validation and per-field coercion for the card editor."""
from __future__ import annotations

import math
import re
from typing import Any
from urllib.parse import urlsplit

from bizcard.domain.card import CARD_GROUPS, FONT_FAMILIES, THEME_TEMPLATES, group_keys
from bizcard.domain.errors import ValidationFailedError
from bizcard.domain.usernames import RESERVED_USERNAMES, USERNAME_PATTERN, normalize_username

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
HEX_COLOR_RE = re.compile(r"#?([0-9a-fA-F]{6})")
SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*):")
WEB_SCHEMES = ("http", "https")

MIN_PASSWORD_LENGTH = 6
RATING_MIN = 1.0
RATING_MAX = 5.0

# keys that only change through the upload helpers
UPLOAD_ONLY_KEYS = {("office_showcase", "images")}

# keys rendered into href/src on the public card
URL_KEYS = {
    ("personal_info", "photo"),
    ("business_info", "logo"),
    ("business_info", "business_card"),
    ("office_showcase", "google_maps_embed"),
    ("media_integration", "youtube_channel"),
    ("media_integration", "instagram_reels"),
    ("media_integration", "featured_video"),
    ("google_reviews", "review_link"),
}


def username_error(value: str) -> str | None:
    if not value:
        return "Username is required"
    if len(value) < 3:
        return "Username must be at least 3 characters"
    if not USERNAME_PATTERN.fullmatch(value):
        return "Use 3-30 characters: letters, numbers, '-' or '_'"
    if value in RESERVED_USERNAMES:
        return "This username is reserved"
    return None


def email_error(value: str) -> str | None:
    if not value:
        return "Email is required"
    if not EMAIL_RE.match(value):
        return "Invalid email"
    return None


def password_error(value: str) -> str | None:
    if not value:
        return "Password is required"
    if len(value) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def _raise_if(errors: dict[str, str | None]) -> None:
    found = {k: v for k, v in errors.items() if v}
    if found:
        raise ValidationFailedError(found)


def validate_registration(username: str, email: str, password: str) -> tuple[str, str]:
    """Return the normalized (username, email) or raise ValidationFailedError."""
    uname = normalize_username(username)
    mail = (email or "").strip()
    _raise_if({
        "username": username_error(uname),
        "email": email_error(mail),
        "password": password_error(password or ""),
    })
    return uname, mail


def validate_login(email: str, password: str) -> str:
    mail = (email or "").strip()
    _raise_if({
        "email": email_error(mail),
        "password": None if password else "Password is required",
    })
    return mail


def validate_email(email: str) -> str:
    mail = (email or "").strip()
    _raise_if({"email": email_error(mail)})
    return mail


def validate_username(username: str) -> str:
    uname = normalize_username(username)
    _raise_if({"username": username_error(uname)})
    return uname


def validate_new_password(password: str, confirm: str | None = None) -> str:
    errors = {"password": password_error(password or "")}
    if confirm is not None and not errors["password"] and password != confirm:
        errors["confirm"] = "Passwords do not match"
    _raise_if(errors)
    return password


def normalize_web_url(value: str) -> str | None:
    """
    Return an http(s) URL for a user-entered link, adding https:// when no
    scheme is given. Any other scheme (javascript:, data:...) gives None.
    """
    text = (value or "").strip()
    if not text or any(ch.isspace() or ord(ch) < 32 for ch in text):
        return None
    match = SCHEME_RE.match(text)
    if not match:
        text = "https://" + text.lstrip("/")
    elif match.group(1).lower() not in WEB_SCHEMES:
        return None
    try:
        host = urlsplit(text).hostname
    except ValueError:
        return None
    return text if host else None


def normalize_hex_color(value: str) -> str | None:
    match = HEX_COLOR_RE.fullmatch((value or "").strip())
    if not match:
        return None
    return "#" + match.group(1).upper()


def coerce_card_field(group: str, key: str, value: Any) -> Any:
    """
    Validate and normalize a single editor value.

    Strings are stripped and an empty string clears the key (returns None).
    Raises ValidationFailedError with the offending ``group.key``.
    """
    field_name = f"{group}.{key}"
    if group not in CARD_GROUPS or key not in group_keys(group):
        raise ValidationFailedError({field_name: "Unknown field"})
    if (group, key) in UPLOAD_ONLY_KEYS:
        raise ValidationFailedError({field_name: "Images are managed through uploads"})
    if value is None:
        return None
    if group == "google_reviews" and key == "rating":
        return _coerce_rating(field_name, value)
    text = str(value).strip()
    if not text:
        return None
    if (group, key) in URL_KEYS:
        url = normalize_web_url(text)
        if not url:
            raise ValidationFailedError({field_name: "Use an http:// or https:// link"})
        return url
    if group == "theme_customization":
        if key == "template" and text not in THEME_TEMPLATES:
            raise ValidationFailedError({field_name: "Unknown template"})
        if key in ("primary_color", "secondary_color"):
            color = normalize_hex_color(text)
            if not color:
                raise ValidationFailedError({field_name: "Use a color like #3B82F6"})
            return color
        if key == "font_family" and text not in FONT_FAMILIES:
            raise ValidationFailedError({field_name: "Unsupported font"})
    if group == "personal_info" and key == "email":
        err = email_error(text)
        if err:
            raise ValidationFailedError({field_name: err})
    if group == "social_media":
        text = text.lstrip("@")
    return text


def _coerce_rating(field_name: str, value: Any) -> float | None:
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        raise ValidationFailedError({field_name: "Rating must be a number"})
    if math.isnan(rating) or rating < RATING_MIN or rating > RATING_MAX:
        raise ValidationFailedError({field_name: "Rating must be between 1 and 5"})
    return round(rating, 1)
