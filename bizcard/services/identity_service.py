"""
Authentication and identity use cases: register, login, logout, password
reset and username changes.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Optional

from bizcard.backend.auth import AuthBackend, AuthBackendError, SessionExpiredError
from bizcard.domain.accounts import Account, Principal
from bizcard.domain.errors import (
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    PersistenceFailedError,
)
from bizcard.domain.usernames import fallback_username, is_valid_username, username_from_email
from bizcard.domain.validation import (
    validate_email,
    validate_login,
    validate_new_password,
    validate_registration,
    validate_username,
)
from bizcard.repositories.sql_repository import SQLRepository
from bizcard.services.card_service import CardRecordManager

logger = logging.getLogger(__name__)


class AuthState(enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


@dataclass
class AuthSession:
    """Who is on the other end of a request."""

    state: AuthState = AuthState.ANONYMOUS
    token: Optional[str] = None
    principal: Optional[Principal] = None
    account: Optional[Account] = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED and self.account is not None

    @classmethod
    def anonymous(cls) -> "AuthSession":
        return cls()


class IdentityService:
    """Handles registration, login, session lookup, password reset and username updates."""

    def __init__(self, auth: AuthBackend, repository: SQLRepository, cards: CardRecordManager) -> None:
        self.auth = auth
        self.repository = repository
        self.cards = cards

    # -------------------------------------- registration --------------------------------------
    def register(self, username: str, email: str, password: str) -> Account:
        username, email = validate_registration(username, email, password)
        if self.repository.username_exists(username):
            raise DuplicateUsernameError()
        if self.repository.email_exists(email):
            raise DuplicateEmailError()
        # the identity must exist before the rows that reference its id
        try:
            principal = self.auth.sign_up(email, password)
        except AuthBackendError as exc:
            logger.error("sign up failed in the auth backend: %s", exc)
            raise PersistenceFailedError("Sign up is unavailable right now") from exc
        account = self.repository.insert_user(principal.id, principal.email, username)
        self.cards.provision(account.id)
        logger.info("registered %s", account.username)
        return account

    # -------------------------------------- login / session --------------------------------------
    def login(self, email: str, password: str) -> AuthSession:
        session = AuthSession(state=AuthState.AUTHENTICATING)
        try:
            email = validate_login(email, password)
            session.principal, session.token = self.auth.sign_in(email, password)
            session.account = self._ensure_account(session.principal)
        except AuthBackendError as exc:
            session.state = AuthState.ANONYMOUS
            logger.error("sign in failed in the auth backend: %s", exc)
            raise PersistenceFailedError("Sign in is unavailable right now") from exc
        except Exception:
            session.state = AuthState.ANONYMOUS
            raise
        session.state = AuthState.AUTHENTICATED
        return session

    def current(self, token: Optional[str]) -> AuthSession:
        """Rebuild the session for a cookie token; anonymous when missing, expired or unreadable."""
        try:
            principal = self.auth.get_principal(token)
            if not principal:
                return AuthSession.anonymous()
            account = self._ensure_account(principal)
        except SessionExpiredError as exc:
            self.cards.discard(exc.identity_id)
            return AuthSession.anonymous()
        except (AuthBackendError, PersistenceFailedError) as exc:
            logger.warning("session lookup failed, treating request as anonymous: %s", exc)
            return AuthSession.anonymous()
        return AuthSession(state=AuthState.AUTHENTICATED, token=token, principal=principal, account=account)

    def _ensure_account(self, principal: Principal) -> Account:
        """Fetch the users row for a principal, creating it (and its card) when missing."""
        account = self.repository.get_user_by_id(principal.id)
        if account:
            return account
        logger.info("no users row for principal %s; provisioning", principal.id)
        candidate = username_from_email(principal.email, principal.id)
        if not is_valid_username(candidate) or self.repository.username_exists(candidate):
            candidate = fallback_username(principal.id)
        try:
            account = self.repository.insert_user(principal.id, principal.email, candidate)
        except (DuplicateUsernameError, DuplicateEmailError, PersistenceFailedError):
            # a concurrent request may have provisioned the same principal
            account = self.repository.get_user_by_id(principal.id)
            if not account:
                raise
        self.cards.provision(account.id)
        return account

    def logout(self, session: AuthSession) -> AuthSession:
        """Drop the session locally; server-side invalidation is best-effort."""
        if session.account:
            self.cards.discard(session.account.id)
        try:
            self.auth.sign_out(session.token)
        except Exception as exc:
            logger.warning("sign out did not reach the backend: %s", exc)
        return AuthSession.anonymous()

    # -------------------------------------- password reset --------------------------------------
    def reset_password(self, email: str, redirect_url: str) -> None:
        email = validate_email(email)
        self.auth.send_password_reset(email, redirect_url)

    def reset_token_valid(self, token: str) -> bool:
        return self.auth.validate_reset_token(token)

    def complete_password_reset(self, token: str, password: str, confirm: str | None = None) -> bool:
        validate_new_password(password, confirm)
        principal = self.auth.complete_password_reset(token, password)
        if not principal:
            return False
        self.cards.discard(principal.id)
        return True

    # -------------------------------------- username --------------------------------------
    def update_username(self, session: AuthSession, new_username: str) -> Account:
        if not session.is_authenticated:
            raise InvalidCredentialsError("Sign in to change your username")
        username = validate_username(new_username)
        account = session.account
        if username == account.username:
            return account
        if self.repository.username_exists(username, exclude_id=account.id):
            raise DuplicateUsernameError()
        updated = self.repository.update_username(account.id, username)
        session.account = replace(account, username=updated.username, updated_at=updated.updated_at)
        return session.account
