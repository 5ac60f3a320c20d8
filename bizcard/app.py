import logging
import os

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from bizcard.context import AppContext, build_context
from bizcard.core.config import Settings, get_settings
from bizcard.routers import admin as admin_router
from bizcard.routers import auth as auth_router
from bizcard.routers import pages as pages_router
from bizcard.routers.common import render

logger = logging.getLogger(__name__)

BASE = os.path.dirname(__file__)
WEB = os.path.abspath(os.path.join(BASE, "..", "web"))
TEMPLATES = os.path.abspath(os.path.join(BASE, "..", "templates"))


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "style-src 'self' 'unsafe-inline'; "
            "frame-src https://www.google.com https://maps.google.com https://www.youtube.com; "
            "script-src 'self' 'unsafe-inline'",
        )
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _setup_app(app: FastAPI) -> None:
    """Without a backend every route answers with the setup guidance page."""

    @app.api_route("/{path:path}", methods=["GET", "POST"], include_in_schema=False)
    def setup_required(request: Request, path: str = ""):
        return render(request, "setup.html", {}, status_code=503)


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``uvicorn bizcard.app:app``)."""
    settings = settings or get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(title="Digital Business Card")
    app.state.templates = Jinja2Templates(directory=TEMPLATES)
    app.state.css_href = "/static/card.css"
    app.state.settings = settings
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    os.makedirs(settings.uploads_dir, exist_ok=True)
    # more specific mount first so uploads are not looked up under web/
    app.mount("/static/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")
    app.mount("/static", StaticFiles(directory=WEB), name="static")

    if not settings.backend_configured:
        logger.warning("DATABASE_URL / BACKEND_PUBLIC_KEY missing; serving setup instructions only")
        _setup_app(app)
        return app

    app.state.context = context or build_context(settings)
    app.include_router(pages_router.router)
    app.include_router(auth_router.router)
    app.include_router(admin_router.router)
    # last: /businesscard/{username} would otherwise shadow the routes above
    app.include_router(pages_router.public_router)
    return app


app = create_app()
