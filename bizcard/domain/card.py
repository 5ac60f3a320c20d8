"""
The business card document.

Every field group is an explicit dataclass and always present on a Card, so
rendering only branches on whether a field inside a group is set. Groups are
stored as JSON objects in the ``business_cards`` table; ``to_record`` and
``from_record`` are the only places that know about that shape.
"""
from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Mapping, Optional

SOCIAL_PLATFORMS = (
    "instagram",
    "twitter",
    "youtube",
    "linkedin",
    "facebook",
    "github",
    "reddit",
    "pinterest",
    "snapchat",
    "discord",
    "telegram",
)

THEME_TEMPLATES = ("modern", "classic", "vibrant", "nature", "elegant", "minimal")
FONT_FAMILIES = ("Inter", "Roboto", "Open Sans", "Lato", "Montserrat", "Poppins")

DEFAULT_TEMPLATE = "modern"
DEFAULT_PRIMARY_COLOR = "#3B82F6"
DEFAULT_SECONDARY_COLOR = "#8B5CF6"
DEFAULT_FONT_FAMILY = "Inter"


@dataclass
class PersonalInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    photo: Optional[str] = None


@dataclass
class BusinessInfo:
    business_name: Optional[str] = None
    services: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    business_card: Optional[str] = None


@dataclass
class SocialMedia:
    instagram: Optional[str] = None
    twitter: Optional[str] = None
    youtube: Optional[str] = None
    linkedin: Optional[str] = None
    facebook: Optional[str] = None
    github: Optional[str] = None
    reddit: Optional[str] = None
    pinterest: Optional[str] = None
    snapchat: Optional[str] = None
    discord: Optional[str] = None
    telegram: Optional[str] = None


@dataclass
class OfficeShowcase:
    images: list[str] = field(default_factory=list)
    location: Optional[str] = None
    google_maps_embed: Optional[str] = None


@dataclass
class MediaIntegration:
    youtube_channel: Optional[str] = None
    instagram_reels: Optional[str] = None
    featured_video: Optional[str] = None


@dataclass
class GoogleReviews:
    review_link: Optional[str] = None
    rating: Optional[float] = None
    review_text: Optional[str] = None


@dataclass
class ThemeCustomization:
    template: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    font_family: Optional[str] = None
    layout: Optional[str] = None


def default_theme() -> ThemeCustomization:
    return ThemeCustomization(
        template=DEFAULT_TEMPLATE,
        primary_color=DEFAULT_PRIMARY_COLOR,
        secondary_color=DEFAULT_SECONDARY_COLOR,
    )


CARD_GROUPS: dict[str, type] = {
    "personal_info": PersonalInfo,
    "business_info": BusinessInfo,
    "social_media": SocialMedia,
    "office_showcase": OfficeShowcase,
    "media_integration": MediaIntegration,
    "google_reviews": GoogleReviews,
    "theme_customization": ThemeCustomization,
}


def group_keys(group: str) -> tuple[str, ...]:
    cls = CARD_GROUPS.get(group)
    if cls is None:
        return ()
    return tuple(f.name for f in fields(cls))


def _group_to_dict(value: Any) -> dict:
    return {k: v for k, v in asdict(value).items() if v is not None}


def _group_from_dict(cls: type, data: Any):
    if not isinstance(data, Mapping):
        return cls()
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        raw = data.get(f.name)
        if raw is None:
            continue
        if f.name == "images":
            if isinstance(raw, (list, tuple)):
                kwargs["images"] = [str(item) for item in raw if isinstance(item, str) and item]
        elif f.name == "rating":
            try:
                kwargs["rating"] = float(raw)
            except (TypeError, ValueError):
                continue
        else:
            kwargs[f.name] = str(raw)
    return cls(**kwargs)


@dataclass
class Card:
    user_id: str
    id: Optional[str] = None
    personal_info: PersonalInfo = field(default_factory=PersonalInfo)
    business_info: BusinessInfo = field(default_factory=BusinessInfo)
    social_media: SocialMedia = field(default_factory=SocialMedia)
    office_showcase: OfficeShowcase = field(default_factory=OfficeShowcase)
    media_integration: MediaIntegration = field(default_factory=MediaIntegration)
    google_reviews: GoogleReviews = field(default_factory=GoogleReviews)
    theme_customization: ThemeCustomization = field(default_factory=default_theme)
    is_published: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def group(self, name: str):
        if name not in CARD_GROUPS:
            raise KeyError(name)
        return getattr(self, name)

    def copy(self) -> "Card":
        return copy.deepcopy(self)

    def to_record(self) -> dict:
        """Column values for the ``business_cards`` row (without id/timestamps)."""
        record = {name: _group_to_dict(getattr(self, name)) for name in CARD_GROUPS}
        record["user_id"] = self.user_id
        record["is_published"] = bool(self.is_published)
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Card":
        """Build a Card from a row mapping; null groups become empty groups, unknown keys are dropped."""
        groups = {name: _group_from_dict(group_cls, record.get(name)) for name, group_cls in CARD_GROUPS.items()}
        if record.get("theme_customization") is None:
            groups["theme_customization"] = default_theme()
        return cls(
            user_id=str(record.get("user_id") or ""),
            id=record.get("id"),
            is_published=bool(record.get("is_published")),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
            **groups,
        )
