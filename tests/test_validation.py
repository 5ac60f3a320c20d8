from __future__ import annotations

import pytest

from bizcard.domain.errors import ValidationFailedError
from bizcard.domain.usernames import fallback_username, is_valid_username, username_from_email
from bizcard.domain.validation import (
    coerce_card_field,
    normalize_hex_color,
    validate_new_password,
    validate_registration,
)


def test_registration_normalizes_username_and_email():
    assert validate_registration("  Alice ", " alice@example.com ", "secret1") == ("alice", "alice@example.com")


def test_registration_reports_every_bad_field():
    with pytest.raises(ValidationFailedError) as info:
        validate_registration("a!", "not-an-email", "123")

    assert set(info.value.errors) == {"username", "email", "password"}


@pytest.mark.parametrize("name", ["admin", "signin", "static", "reset-password"])
def test_reserved_usernames_are_rejected(name):
    assert not is_valid_username(name)
    with pytest.raises(ValidationFailedError) as info:
        validate_registration(name, "a@example.com", "secret1")
    assert info.value.errors["username"] == "This username is reserved"


def test_username_derived_from_email_with_fallback():
    pid = "0a1b2c3d-4e5f-6789-abcd-ef0123456789"
    assert username_from_email("Jane.Doe@example.com", pid) == "jane-doe"
    assert username_from_email("ab@example.com", pid) == "user_0a1b2c3d"
    assert fallback_username(pid) == "user_0a1b2c3d"


def test_password_confirmation_must_match():
    with pytest.raises(ValidationFailedError) as info:
        validate_new_password("secret1", "secret2")
    assert info.value.errors == {"confirm": "Passwords do not match"}
    assert info.value.message == "Passwords do not match"


def test_empty_string_clears_a_field():
    assert coerce_card_field("personal_info", "name", "   ") is None
    assert coerce_card_field("personal_info", "name", " Alice ") == "Alice"


def test_rating_bounds_and_comma_decimal():
    assert coerce_card_field("google_reviews", "rating", "4,7") == 4.7
    assert coerce_card_field("google_reviews", "rating", "") is None
    for bad in ("0.5", "5.1", "abc", "nan"):
        with pytest.raises(ValidationFailedError) as info:
            coerce_card_field("google_reviews", "rating", bad)
        assert "google_reviews.rating" in info.value.errors


def test_theme_fields_are_checked():
    assert coerce_card_field("theme_customization", "primary_color", "ff0000") == "#FF0000"
    assert normalize_hex_color("#12ab34") == "#12AB34"
    assert normalize_hex_color("red") is None
    with pytest.raises(ValidationFailedError):
        coerce_card_field("theme_customization", "template", "neon")
    with pytest.raises(ValidationFailedError):
        coerce_card_field("theme_customization", "font_family", "Comic Sans")


def test_social_handles_lose_leading_at():
    assert coerce_card_field("social_media", "github", "@alice") == "alice"


def test_unknown_and_upload_only_fields_are_rejected():
    with pytest.raises(ValidationFailedError):
        coerce_card_field("personal_info", "nickname", "al")
    with pytest.raises(ValidationFailedError):
        coerce_card_field("office_showcase", "images", "a.jpg")


@pytest.mark.parametrize(
    "group,key",
    [
        ("google_reviews", "review_link"),
        ("media_integration", "featured_video"),
        ("office_showcase", "google_maps_embed"),
    ],
)
@pytest.mark.parametrize("link", ["javascript:alert(document.cookie)", " JavaScript:alert(1)", "java\tscript:alert(1)", "data:text/html,hi"])
def test_link_fields_only_accept_web_urls(group, key, link):
    with pytest.raises(ValidationFailedError) as info:
        coerce_card_field(group, key, link)
    assert info.value.errors == {f"{group}.{key}": "Use an http:// or https:// link"}


def test_link_fields_get_https_when_scheme_missing():
    assert coerce_card_field("google_reviews", "review_link", "g.page/r/alice") == "https://g.page/r/alice"
    assert coerce_card_field("media_integration", "youtube_channel", "http://youtube.com/c/a") == "http://youtube.com/c/a"
