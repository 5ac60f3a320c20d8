"""
Application context: the backend adapters and services, built once per app.

Routers receive it through the ``get_context`` dependency instead of
importing module-level singletons.
"""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from bizcard.backend.auth import AuthBackend
from bizcard.backend.storage import BlobStore, LocalBlobStore
from bizcard.core.config import Settings
from bizcard.repositories.sql_repository import SQLRepository
from bizcard.services.card_display import PublicCardRenderer
from bizcard.services.card_service import CardRecordManager
from bizcard.services.identity_service import AuthSession, IdentityService
from bizcard.services.session_service import session_token


@dataclass
class AppContext:
    settings: Settings
    repository: SQLRepository
    auth: AuthBackend
    blobs: BlobStore
    identity: IdentityService
    cards: CardRecordManager
    renderer: PublicCardRenderer


def build_context(
    settings: Settings,
    *,
    repository: SQLRepository | None = None,
    auth: AuthBackend | None = None,
    blobs: BlobStore | None = None,
) -> AppContext:
    repository = repository or SQLRepository()
    auth = auth or AuthBackend(settings)
    blobs = blobs or LocalBlobStore(settings.uploads_dir, settings)
    cards = CardRecordManager(repository, blobs)
    return AppContext(
        settings=settings,
        repository=repository,
        auth=auth,
        blobs=blobs,
        identity=IdentityService(auth, repository, cards),
        cards=cards,
        renderer=PublicCardRenderer(repository),
    )


def get_context(request: Request) -> AppContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise RuntimeError("AppContext not configured")
    return ctx


def current_session(request: Request) -> AuthSession:
    """Session for the request's cookie, cached on request.state."""
    cached = getattr(request.state, "auth_session", None)
    if cached is not None:
        return cached
    session = get_context(request).identity.current(session_token(request))
    request.state.auth_session = session
    return session
