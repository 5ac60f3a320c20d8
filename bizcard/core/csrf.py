"""
Double-submit CSRF protection for the HTML forms.

Every rendered page carries the token both in the ``csrf_token`` cookie and
in a hidden form field; state-changing routes depend on ``require_csrf``.
"""
from __future__ import annotations

import secrets
from urllib.parse import urlsplit

from fastapi import HTTPException, Request, Response

from bizcard.core.config import get_settings

CSRF_COOKIE_NAME = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_COOKIE_MAX_AGE = 7 * 24 * 60 * 60
MIN_TOKEN_LENGTH = 16


def ensure_csrf_token(request: Request) -> str:
    token = request.cookies.get(CSRF_COOKIE_NAME) or ""
    return token if len(token) >= MIN_TOKEN_LENGTH else secrets.token_urlsafe(32)


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=CSRF_COOKIE_MAX_AGE,
        httponly=False,
        secure=get_settings().app_env == "prod",
        samesite="strict",
        path="/",
    )


def _same_host(request: Request) -> bool:
    source = request.headers.get("origin") or request.headers.get("referer")
    if not source:
        return True
    try:
        source_host = (urlsplit(source).hostname or "").lower()
    except ValueError:
        return False
    own_host = (request.headers.get("host") or "").split(":", 1)[0].lower()
    return not (source_host and own_host) or source_host == own_host


async def require_csrf(request: Request) -> None:
    """FastAPI dependency: 403 unless the submitted token matches the cookie."""
    form = await request.form()
    supplied = str(form.get(CSRF_FORM_FIELD) or request.headers.get(CSRF_HEADER_NAME) or "").strip()
    cookie = request.cookies.get(CSRF_COOKIE_NAME)
    if not cookie or not supplied:
        raise HTTPException(403, "Missing CSRF token.")
    if not secrets.compare_digest(cookie, supplied):
        raise HTTPException(403, "Invalid CSRF token.")
    if not _same_host(request):
        raise HTTPException(403, "Invalid origin.")
