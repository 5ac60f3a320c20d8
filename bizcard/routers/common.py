"""Helpers shared by the HTML routers (templates, CSRF-bearing responses, PRG redirects)."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import Request
from fastapi.responses import RedirectResponse

from bizcard.core import csrf
from bizcard.core.urls import with_query

CSS_HREF = "/static/card.css"


def templates(request: Request):
    tpl = getattr(getattr(request.app, "state", None), "templates", None)
    if tpl:
        return tpl
    raise RuntimeError("Templates not configured")


def render(request: Request, name: str, context: Optional[dict[str, Any]] = None, status_code: int = 200):
    """Render a template with a CSRF token and the flash banners from the query string."""
    token = csrf.ensure_csrf_token(request)
    ctx = {
        "css_href": getattr(request.app.state, "css_href", CSS_HREF),
        "csrf_token": token,
        "notice": request.query_params.get("notice", ""),
        "error": request.query_params.get("error", ""),
        "errors": {},
        "values": {},
    }
    ctx.update(context or {})
    response = templates(request).TemplateResponse(request, name, ctx, status_code=status_code)
    csrf.set_csrf_cookie(response, token)
    return response


def redirect(path: str, *, notice: str = "", error: str = "", **params: str) -> RedirectResponse:
    """Post/Redirect/Get with an optional toast message."""
    return RedirectResponse(with_query(path, **params, notice=notice, error=error), status_code=303)
