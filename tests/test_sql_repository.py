"""
Smoke tests for the SQLRepository against a temporary SQLite database.
"""
from __future__ import annotations

import pytest

from bizcard.db import models
from bizcard.db import session as db_session
from bizcard.domain.card import Card
from bizcard.domain.errors import (
    AccountNotFoundError,
    DuplicateEmailError,
    DuplicateUsernameError,
    PersistenceFailedError,
)
from bizcard.repositories.sql_repository import SQLRepository


def test_user_insert_and_lookups(temp_db):
    repo = SQLRepository()
    account = repo.insert_user("id-1", "Alice@Example.com", "alice")

    assert account.username == "alice"
    assert repo.get_user_by_id("id-1").email == "Alice@Example.com"
    assert repo.get_user_by_username("alice").id == "id-1"
    assert repo.get_user_by_username("bob") is None
    assert repo.username_exists("alice")
    assert not repo.username_exists("alice", exclude_id="id-1")
    assert repo.email_exists("alice@example.com")


def test_unique_violations_are_translated(temp_db):
    repo = SQLRepository()
    repo.insert_user("id-1", "alice@example.com", "alice")

    with pytest.raises(DuplicateUsernameError):
        repo.insert_user("id-2", "other@example.com", "alice")
    with pytest.raises(DuplicateEmailError):
        repo.insert_user("id-3", "alice@example.com", "someone")
    assert repo.get_user_by_id("id-2") is None


def test_update_username(temp_db):
    repo = SQLRepository()
    repo.insert_user("id-1", "alice@example.com", "alice")
    repo.insert_user("id-2", "bob@example.com", "bob")

    assert repo.update_username("id-1", "alice2").username == "alice2"
    with pytest.raises(DuplicateUsernameError):
        repo.update_username("id-1", "bob")
    with pytest.raises(AccountNotFoundError):
        repo.update_username("missing", "carol")


def test_insert_card_if_absent_is_idempotent(temp_db):
    repo = SQLRepository()
    first = repo.insert_card_if_absent(Card(user_id="id-1"))
    again = repo.insert_card_if_absent(Card(user_id="id-1"))

    assert first.id == again.id
    assert repo.count_cards("id-1") == 1
    assert first.is_published is False


def test_upsert_card_writes_whole_document(temp_db):
    repo = SQLRepository()
    repo.insert_card_if_absent(Card(user_id="id-1"))

    card = repo.get_card("id-1")
    card.personal_info.name = "Alice"
    card.office_showcase.images = ["a.jpg", "b.jpg"]
    card.google_reviews.rating = 4.5
    card.is_published = True
    repo.upsert_card(card)

    stored = repo.get_card("id-1", published_only=True)
    assert stored.personal_info.name == "Alice"
    assert stored.office_showcase.images == ["a.jpg", "b.jpg"]
    assert stored.google_reviews.rating == 4.5
    assert repo.count_cards("id-1") == 1


def test_get_card_published_only(temp_db):
    repo = SQLRepository()
    repo.insert_card_if_absent(Card(user_id="id-1"))

    assert repo.get_card("id-1") is not None
    assert repo.get_card("id-1", published_only=True) is None
    assert repo.get_card("missing") is None


def test_read_failures_are_translated(temp_db):
    repo = SQLRepository()
    models.Base.metadata.drop_all(bind=db_session.get_engine())

    with pytest.raises(PersistenceFailedError):
        repo.username_exists("alice")
    with pytest.raises(PersistenceFailedError):
        repo.email_exists("alice@example.com")
    with pytest.raises(PersistenceFailedError):
        repo.get_user_by_id("id-1")
    with pytest.raises(PersistenceFailedError):
        repo.get_card("id-1")
    with pytest.raises(PersistenceFailedError):
        repo.count_cards("id-1")
