"""Structured storage for the ``users`` and ``business_cards`` tables, backed by SQLAlchemy."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bizcard.db.models import BusinessCard, User
from bizcard.db.session import get_session
from bizcard.domain.accounts import Account
from bizcard.domain.card import CARD_GROUPS, Card
from bizcard.domain.errors import (
    AccountNotFoundError,
    DuplicateEmailError,
    DuplicateUsernameError,
    PersistenceFailedError,
)

logger = logging.getLogger(__name__)


@contextmanager
def _store_session(operation: str):
    """A session whose SQLAlchemy failures surface as PersistenceFailedError."""
    try:
        with get_session() as session:
            yield session
    except SQLAlchemyError as exc:
        logger.error("%s failed: %s", operation, exc)
        raise PersistenceFailedError() from exc


def _account_from_entity(entity: User) -> Account:
    return Account(
        id=entity.id,
        email=entity.email,
        username=entity.username,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )


def _card_from_entity(entity: BusinessCard) -> Card:
    record = {name: getattr(entity, name) for name in CARD_GROUPS}
    record.update(
        id=entity.id,
        user_id=entity.user_id,
        is_published=entity.is_published,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
    return Card.from_record(record)


class SQLRepository:
    """
    CRUD helpers wrapping the SQLAlchemy session.

    Unique constraint violations are translated into DuplicateUsernameError /
    DuplicateEmailError and every other SQLAlchemy failure, reads included,
    into PersistenceFailedError.
    """

    # -------------------------- users --------------------------
    def get_user_by_id(self, user_id: str) -> Optional[Account]:
        with _store_session("get_user_by_id") as session:
            entity = session.get(User, user_id)
            return _account_from_entity(entity) if entity else None

    def get_user_by_username(self, username: str) -> Optional[Account]:
        with _store_session("get_user_by_username") as session:
            stmt = select(User).where(User.username == username)
            entity = session.execute(stmt).scalar_one_or_none()
            return _account_from_entity(entity) if entity else None

    def username_exists(self, username: str, *, exclude_id: str | None = None) -> bool:
        value = (username or "").strip()
        if not value:
            return False
        with _store_session("username_exists") as session:
            stmt = select(User.id).where(User.username == value)
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            return session.execute(stmt.limit(1)).first() is not None

    def email_exists(self, email: str) -> bool:
        value = (email or "").strip()
        if not value:
            return False
        with _store_session("email_exists") as session:
            stmt = select(User.id).where(func.lower(User.email) == value.lower()).limit(1)
            return session.execute(stmt).first() is not None

    def _conflict_error(self, username: str | None, email: str | None, exclude_id: str | None = None) -> Exception:
        if username and self.username_exists(username, exclude_id=exclude_id):
            return DuplicateUsernameError()
        if email and self.email_exists(email):
            return DuplicateEmailError()
        return PersistenceFailedError()

    def insert_user(self, user_id: str, email: str, username: str) -> Account:
        now = datetime.now(timezone.utc)
        entity = User(id=user_id, email=email, username=username, created_at=now, updated_at=now)
        with get_session() as session:
            session.add(entity)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                logger.info("users insert conflict for %s: %s", username, exc.orig)
                raise self._conflict_error(username, email) from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceFailedError() from exc
            return _account_from_entity(entity)

    def update_username(self, user_id: str, username: str) -> Account:
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(username=username, updated_at=datetime.now(timezone.utc))
            )
            try:
                result = session.execute(stmt)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise self._conflict_error(username, None, exclude_id=user_id) from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceFailedError() from exc
            if not result.rowcount:
                raise AccountNotFoundError()
            return _account_from_entity(session.get(User, user_id))

    # -------------------------- business cards --------------------------
    def get_card(self, user_id: str, *, published_only: bool = False) -> Optional[Card]:
        with _store_session("get_card") as session:
            stmt = select(BusinessCard).where(BusinessCard.user_id == user_id)
            if published_only:
                stmt = stmt.where(BusinessCard.is_published.is_(True))
            entity = session.execute(stmt).scalar_one_or_none()
            return _card_from_entity(entity) if entity else None

    def count_cards(self, user_id: str) -> int:
        with _store_session("count_cards") as session:
            stmt = select(func.count()).select_from(BusinessCard).where(BusinessCard.user_id == user_id)
            return int(session.execute(stmt).scalar_one())

    def insert_card_if_absent(self, card: Card) -> Card:
        """Insert ``card`` unless the account already has one; returns the stored row either way."""
        now = datetime.now(timezone.utc)
        with _store_session("insert_card_if_absent") as session:
            stmt = select(BusinessCard).where(BusinessCard.user_id == card.user_id)
            existing = session.execute(stmt).scalar_one_or_none()
            if existing:
                return _card_from_entity(existing)
            entity = BusinessCard(**card.to_record(), created_at=now, updated_at=now)
            session.add(entity)
            try:
                session.commit()
            except IntegrityError as exc:
                # another request provisioned the same account first
                session.rollback()
                existing = session.execute(stmt).scalar_one_or_none()
                if existing:
                    return _card_from_entity(existing)
                raise PersistenceFailedError() from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceFailedError() from exc
            return _card_from_entity(entity)

    def upsert_card(self, card: Card) -> Card:
        """Write the whole document keyed by ``user_id``."""
        now = datetime.now(timezone.utc)
        record = card.to_record()
        with get_session() as session:
            try:
                stmt = select(BusinessCard).where(BusinessCard.user_id == card.user_id)
                entity = session.execute(stmt).scalar_one_or_none()
                if entity is None:
                    entity = BusinessCard(**record, created_at=now, updated_at=now)
                    session.add(entity)
                else:
                    for key, value in record.items():
                        setattr(entity, key, value)
                    entity.updated_at = now
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceFailedError() from exc
            return _card_from_entity(entity)
