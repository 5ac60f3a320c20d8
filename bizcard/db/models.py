"""SQLAlchemy models for the backend store (auth tables plus users/business_cards)."""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    JSON,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class AuthIdentity(Base):
    """Principal issued by the auth subsystem; distinct from the application-level users row."""

    __tablename__ = "auth_identities"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    sessions = relationship("AuthSession", back_populates="identity", cascade="all,delete-orphan")


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(128), primary_key=True)
    identity_id = Column(String(36), ForeignKey("auth_identities.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    identity = relationship("AuthIdentity", back_populates="sessions")


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    token = Column(String(255), primary_key=True)
    identity_id = Column(String(36), ForeignKey("auth_identities.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), ForeignKey("auth_identities.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(64), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    card = relationship("BusinessCard", uselist=False, back_populates="user", cascade="all,delete-orphan")


class BusinessCard(Base):
    __tablename__ = "business_cards"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    personal_info = Column(JSON, nullable=True, default=dict)
    business_info = Column(JSON, nullable=True, default=dict)
    social_media = Column(JSON, nullable=True, default=dict)
    office_showcase = Column(JSON, nullable=True, default=dict)
    media_integration = Column(JSON, nullable=True, default=dict)
    google_reviews = Column(JSON, nullable=True, default=dict)
    theme_customization = Column(JSON, nullable=True, default=dict)
    is_published = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="card")
