from __future__ import annotations

from bizcard.domain.card import (
    CARD_GROUPS,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    DEFAULT_TEMPLATE,
    SOCIAL_PLATFORMS,
    Card,
    group_keys,
)


def test_new_card_has_every_group_and_default_theme():
    card = Card(user_id="u1")

    for name in CARD_GROUPS:
        assert card.group(name) is not None
    assert card.is_published is False
    assert card.office_showcase.images == []
    assert card.theme_customization.template == DEFAULT_TEMPLATE
    assert card.theme_customization.primary_color == DEFAULT_PRIMARY_COLOR
    assert card.theme_customization.secondary_color == DEFAULT_SECONDARY_COLOR


def test_social_media_group_lists_the_eleven_platforms():
    assert group_keys("social_media") == SOCIAL_PLATFORMS
    assert len(SOCIAL_PLATFORMS) == 11
    assert group_keys("nope") == ()


def test_to_record_drops_unset_keys():
    card = Card(user_id="u1")
    card.personal_info.name = "Alice"

    record = card.to_record()

    assert record["personal_info"] == {"name": "Alice"}
    assert record["business_info"] == {}
    assert record["office_showcase"] == {"images": []}
    assert record["user_id"] == "u1"
    assert record["is_published"] is False


def test_from_record_tolerates_nulls_and_unknown_keys():
    card = Card.from_record({
        "id": "c1",
        "user_id": "u1",
        "personal_info": {"name": "Alice", "nickname": "al"},
        "business_info": None,
        "office_showcase": {"images": ["a.jpg", 3, None, "b.jpg"]},
        "google_reviews": {"rating": "4.5"},
        "theme_customization": None,
        "is_published": 1,
    })

    assert card.personal_info.name == "Alice"
    assert not hasattr(card.personal_info, "nickname")
    assert card.business_info.business_name is None
    assert card.office_showcase.images == ["a.jpg", "b.jpg"]
    assert card.google_reviews.rating == 4.5
    assert card.theme_customization.template == DEFAULT_TEMPLATE
    assert card.is_published is True


def test_copy_is_independent():
    card = Card(user_id="u1")
    card.office_showcase.images.append("a.jpg")

    clone = card.copy()
    clone.office_showcase.images.append("b.jpg")
    clone.personal_info.name = "Bob"

    assert card.office_showcase.images == ["a.jpg"]
    assert card.personal_info.name is None
