"""URL building: public card links, uploaded file links and PRG redirects."""
from __future__ import annotations

from urllib.parse import urlencode, urlsplit

from .config import get_settings

CARD_PREFIX = "/businesscard"


def absolute_url(path: str, base: str | None = None) -> str:
    """Prefix ``path`` with PUBLIC_BASE_URL; absolute http(s) URLs pass through."""
    if urlsplit(path or "").scheme in ("http", "https"):
        return path
    root = (base or get_settings().public_base_url).rstrip("/")
    return f"{root}/{(path or '').lstrip('/')}"


def with_query(url: str, **params: str) -> str:
    """Append the non-empty ``params`` to ``url`` as a query string."""
    query = {k: v for k, v in params.items() if v}
    if not query:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{urlencode(query)}"


def card_path(username: str) -> str:
    return f"{CARD_PREFIX}/{username}"


def card_url(username: str, base: str | None = None) -> str:
    return absolute_url(card_path(username), base=base)
