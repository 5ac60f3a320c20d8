from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from bizcard.context import AppContext, current_session, get_context
from bizcard.core.urls import CARD_PREFIX
from bizcard.domain.errors import NotFoundError
from bizcard.routers.common import render

router = APIRouter(prefix="", tags=["pages"])
public_router = APIRouter(prefix=CARD_PREFIX, tags=["public"])


@router.get("/")
def landing(request: Request):
    return render(request, "landing.html", {"session": current_session(request)})


@public_router.get("/{username}")
def public_card(username: str, request: Request, ctx: AppContext = Depends(get_context)):
    try:
        view = ctx.renderer.resolve(username)
    except NotFoundError:
        return render(request, "not_found.html", {"username": username}, status_code=404)
    session = current_session(request)
    is_owner = session.is_authenticated and session.account.id == view.card.user_id
    return render(request, "card.html", {"view": view, "card": view.card, "is_owner": is_owner})
