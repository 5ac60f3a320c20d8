"""Public card resolution and the display-only projections used by the card page."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from bizcard.domain.card import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    SOCIAL_PLATFORMS,
    Card,
)
from bizcard.domain.errors import CardNotFoundError
from bizcard.domain.usernames import normalize_username
from bizcard.domain.validation import normalize_hex_color, normalize_web_url
from bizcard.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)

SOCIAL_URLS = {
    "instagram": "https://instagram.com/",
    "twitter": "https://twitter.com/",
    "youtube": "https://youtube.com/c/",
    "linkedin": "https://linkedin.com/in/",
    "facebook": "https://facebook.com/",
    "github": "https://github.com/",
    "reddit": "https://reddit.com/u/",
    "pinterest": "https://pinterest.com/",
    "snapchat": "https://snapchat.com/add/",
    "discord": "https://discord.gg/",
    "telegram": "https://t.me/",
}

# label, icon name, accent color
SOCIAL_META = {
    "instagram": ("Instagram", "instagram", "#DB2777"),
    "twitter": ("Twitter/X", "twitter", "#3B82F6"),
    "youtube": ("YouTube", "youtube", "#DC2626"),
    "linkedin": ("LinkedIn", "linkedin", "#1D4ED8"),
    "facebook": ("Facebook", "facebook", "#2563EB"),
    "github": ("GitHub", "github", "#1F2937"),
    "reddit": ("Reddit", "message-circle", "#EA580C"),
    "pinterest": ("Pinterest", "camera", "#DC2626"),
    "snapchat": ("Snapchat", "camera", "#EAB308"),
    "discord": ("Discord", "gamepad-2", "#4F46E5"),
    "telegram": ("Telegram", "send", "#3B82F6"),
}

STAR_COUNT = 5
GRADIENT_ANGLE = 135


@dataclass(frozen=True)
class SocialLink:
    platform: str
    label: str
    handle: str
    url: str
    icon: str
    color: str


@dataclass(frozen=True)
class ThemeGradient:
    angle: int
    start: str
    end: str

    def css(self) -> str:
        return f"linear-gradient({self.angle}deg, {self.start}, {self.end})"


@dataclass(frozen=True)
class StarRating:
    value: float
    filled: int
    empty: int

    @property
    def stars(self) -> list[bool]:
        return [True] * self.filled + [False] * self.empty


@dataclass
class PublicCardView:
    username: str
    card: Card
    social_links: list[SocialLink] = field(default_factory=list)
    gradient: ThemeGradient = field(default_factory=lambda: ThemeGradient(GRADIENT_ANGLE, DEFAULT_PRIMARY_COLOR, DEFAULT_SECONDARY_COLOR))
    stars: Optional[StarRating] = None
    font_family: str = DEFAULT_FONT_FAMILY
    map_embed_url: Optional[str] = None
    review_link: Optional[str] = None
    media_links: list[tuple[str, str]] = field(default_factory=list)


def normalize_external_url(value: str | None) -> str:
    """Stored link as an http(s) URL for href/src; empty when missing or of any other scheme."""
    return normalize_web_url(value or "") or ""


def social_links(card: Card) -> list[SocialLink]:
    """Non-empty handles of the known platforms, in the fixed platform order."""
    links = []
    for platform in SOCIAL_PLATFORMS:
        handle = (getattr(card.social_media, platform, None) or "").strip()
        if not handle:
            continue
        label, icon, color = SOCIAL_META[platform]
        links.append(
            SocialLink(
                platform=platform,
                label=label,
                handle=handle,
                url=f"{SOCIAL_URLS[platform]}{handle}",
                icon=icon,
                color=color,
            )
        )
    return links


def theme_gradient(card: Card) -> ThemeGradient:
    theme = card.theme_customization
    start = normalize_hex_color(theme.primary_color or "") or DEFAULT_PRIMARY_COLOR
    end = normalize_hex_color(theme.secondary_color or "") or DEFAULT_SECONDARY_COLOR
    return ThemeGradient(angle=GRADIENT_ANGLE, start=start, end=end)


def star_rating(rating: float | None) -> Optional[StarRating]:
    """A star is filled when its position is <= the rating (4.7 -> 4 filled)."""
    if rating is None:
        return None
    value = min(max(float(rating), 0.0), float(STAR_COUNT))
    filled = int(math.floor(value))
    return StarRating(value=round(value, 1), filled=filled, empty=STAR_COUNT - filled)


def build_view(username: str, card: Card) -> PublicCardView:
    media = card.media_integration
    media_links = [
        (label, normalize_external_url(url))
        for label, url in (
            ("YouTube channel", media.youtube_channel),
            ("Instagram reels", media.instagram_reels),
            ("Featured video", media.featured_video),
        )
        if normalize_external_url(url)
    ]
    return PublicCardView(
        username=username,
        card=card,
        social_links=social_links(card),
        gradient=theme_gradient(card),
        stars=star_rating(card.google_reviews.rating),
        font_family=card.theme_customization.font_family or DEFAULT_FONT_FAMILY,
        map_embed_url=normalize_external_url(card.office_showcase.google_maps_embed) or None,
        review_link=normalize_external_url(card.google_reviews.review_link) or None,
        media_links=media_links,
    )


class PublicCardRenderer:
    """Read-only lookups for /businesscard/<username>."""

    def __init__(self, repository: SQLRepository) -> None:
        self.repository = repository

    def resolve(self, username: str) -> PublicCardView:
        """
        Return the published card for ``username``.

        Raises CardNotFoundError alike for an unknown user, an unpublished card
        and any backend failure, so the page never reveals which one happened.
        """
        name = normalize_username(username)
        if not name:
            raise CardNotFoundError()
        try:
            account = self.repository.get_user_by_username(name)
            card = self.repository.get_card(account.id, published_only=True) if account else None
        except Exception as exc:
            logger.error("public card lookup failed for %s: %s", name, exc)
            raise CardNotFoundError() from exc
        if account is None or card is None:
            raise CardNotFoundError()
        return build_view(account.username, card)
