from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from bizcard.backend.auth import AuthBackendError
from bizcard.db import session as db_session
from bizcard.db.models import AuthSession as AuthSessionRow
from bizcard.db.session import get_session
from bizcard.domain.card import DEFAULT_TEMPLATE
from bizcard.domain.errors import (
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    PersistenceFailedError,
    ValidationFailedError,
)
from bizcard.services.identity_service import AuthSession, AuthState


def _token_from(mail: dict) -> str:
    url = mail["text"].rsplit(" ", 1)[-1]
    return parse_qs(urlparse(url).query)["token"][0]


def test_register_creates_account_and_default_card(ctx):
    account = ctx.identity.register("Alice", "alice@example.com", "secret1")

    assert account.username == "alice"
    card = ctx.repository.get_card(account.id)
    assert card is not None
    assert card.is_published is False
    assert card.personal_info.name is None
    assert card.theme_customization.template == DEFAULT_TEMPLATE
    assert ctx.repository.count_cards(account.id) == 1


def test_duplicate_username_writes_nothing(ctx):
    ctx.identity.register("alice", "alice@example.com", "secret1")

    with pytest.raises(DuplicateUsernameError):
        ctx.identity.register("alice", "other@example.com", "secret1")
    assert not ctx.repository.email_exists("other@example.com")
    with pytest.raises(InvalidCredentialsError):
        ctx.auth.sign_in("other@example.com", "secret1")


def test_register_reports_auth_backend_failure(ctx, monkeypatch):
    def broken(email, password):
        raise AuthBackendError("connection lost")

    monkeypatch.setattr(ctx.auth, "sign_up", broken)

    with pytest.raises(PersistenceFailedError):
        ctx.identity.register("alice", "alice@example.com", "secret1")
    assert not ctx.repository.username_exists("alice")


def test_duplicate_email_is_reported(ctx):
    ctx.identity.register("alice", "alice@example.com", "secret1")

    with pytest.raises(DuplicateEmailError):
        ctx.identity.register("alice2", "ALICE@example.com", "secret1")


def test_login_and_current_session(ctx):
    account = ctx.identity.register("alice", "alice@example.com", "secret1")

    session = ctx.identity.login("alice@example.com", "secret1")

    assert session.state is AuthState.AUTHENTICATED
    assert session.account.id == account.id
    restored = ctx.identity.current(session.token)
    assert restored.is_authenticated
    assert restored.account.username == "alice"
    assert not ctx.identity.current("bogus").is_authenticated
    assert not ctx.identity.current(None).is_authenticated


def test_login_with_wrong_password(ctx):
    ctx.identity.register("alice", "alice@example.com", "secret1")

    with pytest.raises(InvalidCredentialsError):
        ctx.identity.login("alice@example.com", "wrong-password")
    with pytest.raises(ValidationFailedError):
        ctx.identity.login("not-an-email", "")


def test_login_self_heals_missing_account(ctx):
    principal = ctx.auth.sign_up("jane.doe@example.com", "secret1")

    session = ctx.identity.login("jane.doe@example.com", "secret1")

    assert session.account.id == principal.id
    assert session.account.username == "jane-doe"
    assert ctx.repository.count_cards(principal.id) == 1


def test_self_heal_falls_back_when_username_taken(ctx):
    ctx.identity.register("jane", "someone@example.com", "secret1")
    principal = ctx.auth.sign_up("jane@example.com", "secret1")

    session = ctx.identity.login("jane@example.com", "secret1")

    assert session.account.username == "user_" + principal.id.replace("-", "")[:8]


def test_expired_session_is_anonymous(ctx):
    ctx.identity.register("alice", "alice@example.com", "secret1")
    session = ctx.identity.login("alice@example.com", "secret1")
    ctx.cards.working_copy(session.account.id).set_field("personal_info", "name", "Unsaved")
    with get_session() as db:
        row = db.get(AuthSessionRow, session.token)
        row.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

    assert not ctx.identity.current(session.token).is_authenticated
    assert ctx.cards.working_copy(session.account.id).card.personal_info.name is None


def test_unreadable_session_store_is_anonymous(ctx):
    ctx.identity.register("alice", "alice@example.com", "secret1")
    session = ctx.identity.login("alice@example.com", "secret1")
    AuthSessionRow.__table__.drop(db_session.get_engine())

    current = ctx.identity.current(session.token)

    assert current.state is AuthState.ANONYMOUS


def test_logout_clears_draft_and_session(ctx):
    ctx.identity.register("alice", "alice@example.com", "secret1")
    session = ctx.identity.login("alice@example.com", "secret1")
    draft = ctx.cards.working_copy(session.account.id)
    draft.set_field("personal_info", "name", "Unsaved")

    result = ctx.identity.logout(session)

    assert result.state is AuthState.ANONYMOUS
    assert not ctx.identity.current(session.token).is_authenticated
    assert ctx.cards.working_copy(session.account.id).card.personal_info.name is None


def test_logout_tolerates_backend_failure(ctx, monkeypatch):
    ctx.identity.register("alice", "alice@example.com", "secret1")
    session = ctx.identity.login("alice@example.com", "secret1")

    def broken(token):
        raise RuntimeError("backend down")

    monkeypatch.setattr(ctx.auth, "sign_out", broken)
    assert ctx.identity.logout(session).state is AuthState.ANONYMOUS


def test_password_reset_flow(ctx, outbox):
    ctx.identity.register("alice", "alice@example.com", "secret1")
    old = ctx.identity.login("alice@example.com", "secret1")
    ctx.cards.working_copy(old.account.id).set_field("personal_info", "name", "Unsaved")

    ctx.identity.reset_password("alice@example.com", "http://testserver/businesscard/reset-password")
    ctx.identity.reset_password("nobody@example.com", "http://testserver/businesscard/reset-password")

    assert [m["to"] for m in outbox] == ["alice@example.com"]
    token = _token_from(outbox[0])
    assert ctx.identity.reset_token_valid(token)
    with pytest.raises(ValidationFailedError):
        ctx.identity.complete_password_reset(token, "newpass1", "mismatch")
    assert ctx.identity.complete_password_reset(token, "newpass1", "newpass1") is True
    assert not ctx.identity.reset_token_valid(token)
    assert not ctx.identity.current(old.token).is_authenticated
    assert ctx.cards.working_copy(old.account.id).card.personal_info.name is None
    assert ctx.identity.login("alice@example.com", "newpass1").is_authenticated


def test_update_username(ctx):
    ctx.identity.register("alice", "alice@example.com", "secret1")
    ctx.identity.register("bob", "bob@example.com", "secret1")
    session = ctx.identity.login("alice@example.com", "secret1")

    assert ctx.identity.update_username(session, "alice").username == "alice"
    with pytest.raises(DuplicateUsernameError):
        ctx.identity.update_username(session, "bob")
    with pytest.raises(ValidationFailedError):
        ctx.identity.update_username(session, "admin")
    assert ctx.identity.update_username(session, "Alice_2").username == "alice_2"
    assert session.account.username == "alice_2"
    with pytest.raises(InvalidCredentialsError):
        ctx.identity.update_username(AuthSession.anonymous(), "carol")
