from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request

from bizcard.context import AppContext, current_session, get_context
from bizcard.core.csrf import require_csrf
from bizcard.core.rate_limiter import RateLimit
from bizcard.core.urls import CARD_PREFIX, absolute_url
from bizcard.domain.errors import (
    CardAppError,
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    ValidationFailedError,
)
from bizcard.routers.common import redirect, render
from bizcard.services.session_service import clear_session_cookie, set_session_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix=CARD_PREFIX, tags=["auth"])

AUTH_PATH = CARD_PREFIX
ADMIN_PATH = f"{CARD_PREFIX}/admin"
RESET_PATH = f"{CARD_PREFIX}/reset-password"
MODES = ("signin", "signup", "reset")


def _auth_page(request: Request, mode: str, *, errors: dict | None = None, values: dict | None = None, status_code: int = 200):
    return render(
        request,
        "auth.html",
        {"mode": mode if mode in MODES else "signin", "errors": errors or {}, "values": values or {}},
        status_code=status_code,
    )


@router.get("")
def auth_page(request: Request, mode: str = "signin"):
    if current_session(request).is_authenticated:
        return redirect(ADMIN_PATH)
    return _auth_page(request, mode)


@router.post("/signup", dependencies=[Depends(RateLimit("auth:signup", 10, 300)), Depends(require_csrf)])
def signup(
    request: Request,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    ctx: AppContext = Depends(get_context),
):
    values = {"username": username, "email": email}
    try:
        ctx.identity.register(username, email, password)
        session = ctx.identity.login(email, password)
    except ValidationFailedError as exc:
        return _auth_page(request, "signup", errors=exc.errors, values=values, status_code=400)
    except DuplicateUsernameError as exc:
        return _auth_page(request, "signup", errors={"username": exc.message}, values=values, status_code=409)
    except DuplicateEmailError as exc:
        return _auth_page(request, "signup", errors={"email": exc.message}, values=values, status_code=409)
    except CardAppError as exc:
        return redirect(AUTH_PATH, mode="signup", error=exc.message or "Failed to create account")
    response = redirect(ADMIN_PATH, notice="Account created successfully!")
    set_session_cookie(response, session.token)
    return response


@router.post("/signin", dependencies=[Depends(RateLimit("auth:signin", 10, 300)), Depends(require_csrf)])
def signin(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    ctx: AppContext = Depends(get_context),
):
    try:
        session = ctx.identity.login(email, password)
    except ValidationFailedError as exc:
        return _auth_page(request, "signin", errors=exc.errors, values={"email": email}, status_code=400)
    except InvalidCredentialsError as exc:
        return redirect(AUTH_PATH, mode="signin", error=exc.message)
    except CardAppError as exc:
        return redirect(AUTH_PATH, mode="signin", error=exc.message or "Failed to sign in")
    response = redirect(ADMIN_PATH, notice="Welcome back!")
    set_session_cookie(response, session.token)
    return response


@router.post("/reset", dependencies=[Depends(RateLimit("auth:reset", 5, 300)), Depends(require_csrf)])
def request_reset(
    request: Request,
    email: str = Form(""),
    ctx: AppContext = Depends(get_context),
):
    try:
        ctx.identity.reset_password(email, absolute_url(RESET_PATH, base=ctx.settings.public_base_url))
    except ValidationFailedError as exc:
        return _auth_page(request, "reset", errors=exc.errors, values={"email": email}, status_code=400)
    except CardAppError as exc:
        return redirect(AUTH_PATH, mode="reset", error=exc.message)
    return redirect(AUTH_PATH, mode="signin", notice="If the email is registered, a reset link is on its way.")


@router.post("/logout", dependencies=[Depends(require_csrf)])
def logout(request: Request, ctx: AppContext = Depends(get_context)):
    ctx.identity.logout(current_session(request))
    response = redirect("/")
    clear_session_cookie(response)
    return response


@router.get("/reset-password")
def reset_password_form(request: Request, token: str = "", ctx: AppContext = Depends(get_context)):
    if not ctx.identity.reset_token_valid(token):
        return render(request, "reset_password.html", {"token": "", "invalid": True}, status_code=400)
    return render(request, "reset_password.html", {"token": token, "invalid": False})


@router.post("/reset-password", dependencies=[Depends(require_csrf)])
def reset_password_submit(
    request: Request,
    token: str = Form(""),
    password: str = Form(""),
    confirm: str = Form(""),
    ctx: AppContext = Depends(get_context),
):
    try:
        done = ctx.identity.complete_password_reset(token, password, confirm)
    except ValidationFailedError as exc:
        return render(request, "reset_password.html", {"token": token, "invalid": False, "errors": exc.errors}, status_code=400)
    if not done:
        return render(request, "reset_password.html", {"token": "", "invalid": True}, status_code=400)
    return redirect(AUTH_PATH, mode="signin", notice="Password updated. Sign in with your new password.")
