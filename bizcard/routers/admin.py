from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from bizcard.context import AppContext, current_session, get_context
from bizcard.core.csrf import require_csrf
from bizcard.core.urls import CARD_PREFIX, card_url
from bizcard.domain.card import FONT_FAMILIES, SOCIAL_PLATFORMS, THEME_TEMPLATES, group_keys
from bizcard.domain.errors import CardAppError, DuplicateUsernameError, ValidationFailedError
from bizcard.domain.validation import UPLOAD_ONLY_KEYS
from bizcard.routers.common import redirect, render
from bizcard.services.card_display import SOCIAL_META, SOCIAL_URLS, theme_gradient
from bizcard.services.images import UploadedFile

logger = logging.getLogger(__name__)

ADMIN_PATH = f"{CARD_PREFIX}/admin"

router = APIRouter(prefix=ADMIN_PATH, tags=["admin"])

SECTIONS = {
    "personal": ("personal_info", "Personal Info"),
    "business": ("business_info", "Business Info"),
    "social": ("social_media", "Social Media"),
    "office": ("office_showcase", "Office Showcase"),
    "media": ("media_integration", "Video & Media"),
    "reviews": ("google_reviews", "Google Reviews"),
    "theme": ("theme_customization", "Theme & Design"),
    "settings": (None, "Settings"),
}

# URL fields filled by single-file uploads rather than typed in
UPLOAD_FIELDS = {
    ("personal_info", "photo"),
    ("business_info", "logo"),
    ("business_info", "business_card"),
}


def _section_path(section: str) -> str:
    return f"{ADMIN_PATH}?section={section}"


def _section_for_group(group: str) -> str:
    for section, (grp, _) in SECTIONS.items():
        if grp == group:
            return section
    return "personal"


def _editor(request: Request, ctx: AppContext, section: str, *, errors: dict | None = None, status_code: int = 200):
    session = current_session(request)
    draft = ctx.cards.working_copy(session.account.id)
    section = section if section in SECTIONS else "personal"
    return render(
        request,
        "admin.html",
        {
            "account": session.account,
            "card": draft.card,
            "dirty": draft.dirty,
            "section": section,
            "sections": SECTIONS,
            "errors": errors or {},
            "public_url": card_url(session.account.username, base=ctx.settings.public_base_url),
            "social_platforms": [(p, SOCIAL_META[p][0], SOCIAL_URLS[p]) for p in SOCIAL_PLATFORMS],
            "templates_available": THEME_TEMPLATES,
            "fonts": FONT_FAMILIES,
            "gradient": theme_gradient(draft.card),
        },
        status_code=status_code,
    )


@router.get("")
def admin(request: Request, section: str = "personal", ctx: AppContext = Depends(get_context)):
    if not current_session(request).is_authenticated:
        return redirect(CARD_PREFIX)
    return _editor(request, ctx, section)


@router.post("/section/{section}", dependencies=[Depends(require_csrf)])
async def save_section(section: str, request: Request, ctx: AppContext = Depends(get_context)):
    session = current_session(request)
    if not session.is_authenticated:
        return redirect(CARD_PREFIX)
    form = await request.form()
    group = SECTIONS.get(section, (None, ""))[0]
    if not group:
        return redirect(_section_path("personal"), error="Unknown section")
    editable = [k for k in group_keys(group) if (group, k) not in UPLOAD_ONLY_KEYS and (group, k) not in UPLOAD_FIELDS]
    values = {key: form.get(key) for key in editable if key in form}
    draft = ctx.cards.working_copy(session.account.id)
    try:
        draft.set_fields(group, values)
    except ValidationFailedError as exc:
        return _editor(request, ctx, section, errors=exc.errors, status_code=400)
    return redirect(ADMIN_PATH, section=section, notice="Saved to your draft. Publish to make it live.")


@router.post("/upload/{group}/{key}", dependencies=[Depends(require_csrf)])
async def upload_single(
    group: str,
    key: str,
    request: Request,
    file: UploadFile = File(...),
    ctx: AppContext = Depends(get_context),
):
    session = current_session(request)
    if not session.is_authenticated:
        return redirect(CARD_PREFIX)
    section = _section_for_group(group)
    if (group, key) not in UPLOAD_FIELDS:
        return redirect(ADMIN_PATH, section=section, error="This field does not accept uploads")
    upload = UploadedFile(filename=file.filename or "file", content_type=file.content_type or "", data=await file.read())
    draft = ctx.cards.working_copy(session.account.id)
    try:
        ctx.cards.upload_file(draft, group, key, upload)
    except ValidationFailedError as exc:
        return _editor(request, ctx, section, errors=exc.errors, status_code=400)
    except CardAppError as exc:
        return redirect(ADMIN_PATH, section=section, error=exc.message)
    return redirect(ADMIN_PATH, section=section, notice="File uploaded successfully!")


@router.post("/office/images", dependencies=[Depends(require_csrf)])
async def upload_office_images(
    request: Request,
    files: Optional[List[UploadFile]] = File(None),
    ctx: AppContext = Depends(get_context),
):
    session = current_session(request)
    if not session.is_authenticated:
        return redirect(CARD_PREFIX)
    uploads = [
        UploadedFile(filename=f.filename or "file", content_type=f.content_type or "", data=await f.read())
        for f in files or []
        if f.filename
    ]
    if not uploads:
        return redirect(ADMIN_PATH, section="office", error="Choose at least one image to upload")
    draft = ctx.cards.working_copy(session.account.id)
    try:
        urls = ctx.cards.add_images(draft, "office_showcase", "images", uploads)
    except ValidationFailedError as exc:
        return _editor(request, ctx, "office", errors=exc.errors, status_code=400)
    except CardAppError as exc:
        return redirect(ADMIN_PATH, section="office", error=exc.message)
    return redirect(ADMIN_PATH, section="office", notice=f"{len(urls)} files uploaded successfully!")


@router.post("/office/images/{index}/delete", dependencies=[Depends(require_csrf)])
def delete_office_image(index: int, request: Request, ctx: AppContext = Depends(get_context)):
    session = current_session(request)
    if not session.is_authenticated:
        return redirect(CARD_PREFIX)
    draft = ctx.cards.working_copy(session.account.id)
    try:
        ctx.cards.remove_image(draft, "office_showcase", "images", index)
    except ValidationFailedError as exc:
        return redirect(ADMIN_PATH, section="office", error=exc.message)
    return redirect(ADMIN_PATH, section="office", notice="Image removed from your draft.")


@router.post("/publish", dependencies=[Depends(require_csrf)])
def publish(request: Request, section: str = Form("personal"), ctx: AppContext = Depends(get_context)):
    session = current_session(request)
    if not session.is_authenticated:
        return redirect(CARD_PREFIX)
    draft = ctx.cards.working_copy(session.account.id)
    try:
        ctx.cards.publish(draft)
    except CardAppError as exc:
        logger.error("publish failed for %s: %s", session.account.id, exc)
        return redirect(ADMIN_PATH, section=section, error="Failed to publish business card")
    return redirect(ADMIN_PATH, section=section, notice="Business card published successfully!")


@router.post("/username", dependencies=[Depends(require_csrf)])
def update_username(request: Request, username: str = Form(""), ctx: AppContext = Depends(get_context)):
    session = current_session(request)
    if not session.is_authenticated:
        return redirect(CARD_PREFIX)
    try:
        ctx.identity.update_username(session, username)
    except ValidationFailedError as exc:
        return _editor(request, ctx, "settings", errors=exc.errors, status_code=400)
    except DuplicateUsernameError as exc:
        return _editor(request, ctx, "settings", errors={"username": exc.message}, status_code=409)
    except CardAppError as exc:
        return redirect(ADMIN_PATH, section="settings", error=exc.message or "Failed to update username")
    return redirect(ADMIN_PATH, section="settings", notice="Username updated successfully!")
