"""
Shared fixtures: a temporary SQLite store, a fresh Settings and the wired
application context.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Makes the bizcard package importable when the tests run from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bizcard.backend.auth import AuthBackend
from bizcard.context import build_context
from bizcard.core import config as core_config
from bizcard.core import rate_limiter
from bizcard.db import models
from bizcard.db import session as db_session


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    """Point DATABASE_URL at a throwaway SQLite file and create every table."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("BACKEND_PUBLIC_KEY", "test-public-key")
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.delenv("APP_ENV", raising=False)
    # re-read the environment on the next get_settings()/get_engine()
    core_config.get_settings.cache_clear()
    db_session.reset_engine_cache()

    engine = db_session.get_engine()
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    db_session.reset_engine_cache()
    core_config.get_settings.cache_clear()


@pytest.fixture()
def settings(temp_db):
    return core_config.get_settings()


@pytest.fixture()
def outbox():
    """Collects the emails the auth backend would have sent."""
    return []


@pytest.fixture()
def ctx(settings, outbox):
    def fake_mailer(subject, to_email, html_body, text_body=None):
        outbox.append({"subject": subject, "to": to_email, "html": html_body, "text": text_body})
        return True

    rate_limiter.reset_limits()
    return build_context(settings, auth=AuthBackend(settings, mailer=fake_mailer))
