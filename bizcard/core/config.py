"""
Configuration helpers for the business card front end.

Routers and services read a Settings object instead of fetching os.environ
directly, so tests can swap the environment and clear the cache.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

_PLACEHOLDER_MARKERS = ("your_", "_here")


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    backend_public_key: str
    uploads_dir: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    password_reset_ttl: int
    session_ttl_seconds: int
    log_level: str

    @property
    def backend_configured(self) -> bool:
        """False when the backend endpoint or key is missing or still a placeholder."""
        for value in (self.database_url, self.backend_public_key):
            v = (value or "").strip().lower()
            if not v:
                return False
            if all(marker in v for marker in _PLACEHOLDER_MARKERS):
                return False
        return True


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    default_uploads = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "web", "uploads"))
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", ""),
        backend_public_key=os.getenv("BACKEND_PUBLIC_KEY", ""),
        uploads_dir=os.getenv("UPLOADS_DIR", default_uploads),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        password_reset_ttl=_int(os.getenv("PASSWORD_RESET_TTL", "3600"), 3600),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
