"""
Authentication subsystem: identities, password hashing, sessions and
password reset tokens.

The application treats this as the backend's auth service; nothing outside
this module reads the ``auth_*`` tables.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bizcard.core.config import Settings, get_settings
from bizcard.core.mailer import password_reset_email, send_email
from bizcard.core.security import hash_password, needs_rehash, verify_password
from bizcard.core.urls import with_query
from bizcard.db.models import AuthIdentity, AuthSession, PasswordResetToken
from bizcard.db.session import get_session
from bizcard.domain.accounts import Principal
from bizcard.domain.errors import DuplicateEmailError, InvalidCredentialsError, PersistenceFailedError

logger = logging.getLogger(__name__)


class AuthBackendError(Exception):
    """Raised when the auth store itself fails (not for rejected credentials)."""


class SessionExpiredError(Exception):
    """Raised by get_principal after it removes an expired session."""

    def __init__(self, identity_id: str) -> None:
        super().__init__(identity_id)
        self.identity_id = identity_id


def _aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    # SQLite drops tzinfo; stored values are always UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AuthBackend:
    """Sign up / sign in / sign out / password reset against the auth tables."""

    def __init__(self, settings: Settings | None = None, mailer: Callable[..., bool] | None = None) -> None:
        self.settings = settings or get_settings()
        self._send_email = mailer or send_email

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _find_identity(self, session, email: str) -> Optional[AuthIdentity]:
        stmt = select(AuthIdentity).where(func.lower(AuthIdentity.email) == (email or "").strip().lower())
        return session.execute(stmt).scalar_one_or_none()

    # -------------------------------------- sign up / in / out --------------------------------------
    def sign_up(self, email: str, password: str) -> Principal:
        """Create a new identity; fails with DuplicateEmailError when the address is registered."""
        now = self._now()
        identity = AuthIdentity(email=email.strip(), password_hash=hash_password(password), created_at=now, updated_at=now)
        with get_session() as session:
            if self._find_identity(session, email):
                raise DuplicateEmailError()
            session.add(identity)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError() from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise AuthBackendError(str(exc)) from exc
            logger.info("identity created for %s", identity.email)
            return Principal(id=identity.id, email=identity.email)

    def sign_in(self, email: str, password: str) -> tuple[Principal, str]:
        """Check the credentials and issue a session token."""
        ttl = max(60, self.settings.session_ttl_seconds)
        token = secrets.token_urlsafe(32)
        with get_session() as session:
            identity = self._find_identity(session, email)
            if not identity or not verify_password(password, identity.password_hash):
                raise InvalidCredentialsError()
            if needs_rehash(identity.password_hash):
                identity.password_hash = hash_password(password)
            session.add(AuthSession(token=token, identity_id=identity.id, expires_at=self._now() + timedelta(seconds=ttl)))
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise AuthBackendError(str(exc)) from exc
            return Principal(id=identity.id, email=identity.email), token

    def get_principal(self, token: str | None) -> Optional[Principal]:
        """
        Return the principal for a live session token.

        Expired sessions are deleted and reported with SessionExpiredError so
        the caller can drop whatever it keeps for that identity.
        """
        if not token:
            return None
        with get_session() as session:
            try:
                entity = session.get(AuthSession, token)
                if not entity:
                    return None
                expires_at = _aware(entity.expires_at)
                if expires_at and expires_at < self._now():
                    identity_id = entity.identity_id
                    session.delete(entity)
                    session.commit()
                    raise SessionExpiredError(identity_id)
                identity = session.get(AuthIdentity, entity.identity_id)
            except SQLAlchemyError as exc:
                session.rollback()
                raise AuthBackendError(str(exc)) from exc
            if not identity:
                return None
            return Principal(id=identity.id, email=identity.email)

    def sign_out(self, token: str | None) -> None:
        if not token:
            return
        with get_session() as session:
            session.execute(delete(AuthSession).where(AuthSession.token == token))
            session.commit()

    # -------------------------------------- password reset --------------------------------------
    def send_password_reset(self, email: str, redirect_url: str) -> None:
        """
        Email a reset link pointing at ``redirect_url``.

        Unknown addresses are ignored without telling the caller, so the
        response never reveals whether an account exists.
        """
        with get_session() as session:
            identity = self._find_identity(session, email)
            if not identity:
                logger.info("password reset requested for unknown address")
                return
            session.execute(delete(PasswordResetToken).where(PasswordResetToken.identity_id == identity.id))
            token = secrets.token_urlsafe(24)
            session.add(PasswordResetToken(token=token, identity_id=identity.id, created_at=self._now()))
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceFailedError() from exc
            address = identity.email
        subject, html_body, text_body = password_reset_email(with_query(redirect_url, token=token))
        if not self._send_email(subject, address, html_body, text_body):
            logger.warning("password reset email to %s was not delivered", address)

    def _reset_entity(self, session, token: str) -> Optional[PasswordResetToken]:
        token = (token or "").strip()
        if not token:
            return None
        entity = session.get(PasswordResetToken, token)
        if not entity:
            return None
        created = _aware(entity.created_at)
        ttl = self.settings.password_reset_ttl
        if ttl > 0 and created and created + timedelta(seconds=ttl) < self._now():
            session.delete(entity)
            session.commit()
            return None
        return entity

    def validate_reset_token(self, token: str) -> bool:
        with get_session() as session:
            return self._reset_entity(session, token) is not None

    def complete_password_reset(self, token: str, password: str) -> Optional[Principal]:
        """Set a new password for the token's identity; returns None for unknown/expired tokens."""
        with get_session() as session:
            entity = self._reset_entity(session, token)
            if not entity:
                return None
            identity = session.get(AuthIdentity, entity.identity_id)
            session.delete(entity)
            if not identity:
                session.commit()
                return None
            identity.password_hash = hash_password(password)
            identity.updated_at = self._now()
            # existing sessions stop working once the password changes
            session.execute(delete(AuthSession).where(AuthSession.identity_id == identity.id))
            session.commit()
            return Principal(id=identity.id, email=identity.email)
