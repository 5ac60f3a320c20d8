"""
Card record manager: provisioning, the in-memory working copy, uploads and
publishing.

Edits only touch the working copy (CardDraft). ``publish`` is the single
durable write and sends the whole document in one upsert keyed by the
account id.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Mapping, Sequence

from bizcard.backend.storage import BlobStore
from bizcard.domain.card import CARD_GROUPS, Card, group_keys
from bizcard.domain.errors import CardNotFoundError, UploadFailedError, ValidationFailedError
from bizcard.domain.validation import coerce_card_field
from bizcard.repositories.sql_repository import SQLRepository
from bizcard.services.images import MAX_BATCH_FILES, UploadedFile, prepare_image

logger = logging.getLogger(__name__)

MAX_UPLOAD_WORKERS = 4


class CardDraft:
    """Working copy of one account's card."""

    def __init__(self, card: Card) -> None:
        self.card = card.copy()
        self.dirty = False

    @property
    def account_id(self) -> str:
        return self.card.user_id

    def get_field(self, group: str, key: str) -> Any:
        if key not in group_keys(group):
            raise ValidationFailedError({f"{group}.{key}": "Unknown field"})
        return getattr(self.card.group(group), key)

    def set_field(self, group: str, key: str, value: Any) -> None:
        """Set one key; sibling keys of the group are left untouched."""
        coerced = coerce_card_field(group, key, value)
        setattr(self.card.group(group), key, coerced)
        self.dirty = True

    def set_fields(self, group: str, values: Mapping[str, Any]) -> None:
        """Apply a whole form section, or nothing if any value is invalid."""
        coerced: dict[str, Any] = {}
        errors: dict[str, str] = {}
        for key, value in values.items():
            try:
                coerced[key] = coerce_card_field(group, key, value)
            except ValidationFailedError as exc:
                errors.update(exc.errors)
        if errors:
            raise ValidationFailedError(errors)
        target = self.card.group(group)
        for key, value in coerced.items():
            setattr(target, key, value)
        if coerced:
            self.dirty = True

    def _list_field(self, group: str, key: str) -> list[str]:
        if group not in CARD_GROUPS or key not in group_keys(group):
            raise ValidationFailedError({f"{group}.{key}": "Unknown field"})
        current = getattr(self.card.group(group), key)
        if not isinstance(current, list):
            raise ValidationFailedError({f"{group}.{key}": "Field does not hold a list of images"})
        return current


class CardRecordManager:
    """Owns card documents: provision, load, working copies, uploads and publish."""

    def __init__(self, repository: SQLRepository, blobs: BlobStore) -> None:
        self.repository = repository
        self.blobs = blobs
        self._drafts: dict[str, CardDraft] = {}
        self._lock = threading.Lock()

    # -------------------------------------- records --------------------------------------
    def provision(self, account_id: str) -> Card:
        """Create the empty, unpublished card for an account unless one already exists."""
        card = self.repository.insert_card_if_absent(Card(user_id=account_id))
        logger.debug("card provisioned for %s", account_id)
        return card

    def load(self, account_id: str) -> Card:
        card = self.repository.get_card(account_id)
        if card is None:
            raise CardNotFoundError()
        return card

    # -------------------------------------- working copies --------------------------------------
    def working_copy(self, account_id: str) -> CardDraft:
        with self._lock:
            draft = self._drafts.get(account_id)
        if draft is not None:
            return draft
        try:
            card = self.load(account_id)
        except CardNotFoundError:
            # publish upserts by account id, so an unsaved blank card is safe here
            card = Card(user_id=account_id)
        with self._lock:
            return self._drafts.setdefault(account_id, CardDraft(card))

    def discard(self, account_id: str) -> None:
        with self._lock:
            self._drafts.pop(account_id, None)

    # -------------------------------------- uploads --------------------------------------
    def _storage_path(self, account_id: str, group: str, key: str, ext: str) -> str:
        stamp = int(time.time() * 1000)
        return f"{account_id}/{group}_{key}_{stamp}_{secrets.token_hex(4)}.{ext}"

    def _store(self, path: str, data: bytes, content_type: str) -> str:
        self.blobs.upload(path, data, content_type)
        return self.blobs.get_public_url(path)

    def upload_file(self, draft: CardDraft, group: str, key: str, upload: UploadedFile) -> str:
        """Upload a single image and point a scalar URL field (photo, logo...) at it."""
        field_name = f"{group}.{key}"
        if key not in group_keys(group) or isinstance(getattr(draft.card.group(group), key), list):
            raise ValidationFailedError({field_name: "Field does not accept a single file"})
        data, content_type, ext = prepare_image(upload, field_name)
        path = self._storage_path(draft.account_id, group, key, ext)
        try:
            url = self._store(path, data, content_type)
        except UploadFailedError:
            raise
        except Exception as exc:
            logger.error("upload of %s failed: %s", path, exc)
            raise UploadFailedError(failed=[upload.filename]) from exc
        setattr(draft.card.group(group), key, url)
        draft.dirty = True
        return url

    def add_images(self, draft: CardDraft, group: str, key: str, uploads: Sequence[UploadedFile]) -> list[str]:
        """
        Upload a batch concurrently and append the URLs to the ordered list.

        All-or-nothing: every file is checked before anything is uploaded, and
        when any upload fails the list is left unchanged and UploadFailedError
        names the files that failed. Blobs already written stay orphaned.
        """
        current = draft._list_field(group, key)
        field_name = f"{group}.{key}"
        if not uploads:
            return []
        if len(uploads) > MAX_BATCH_FILES:
            raise ValidationFailedError({field_name: f"Upload at most {MAX_BATCH_FILES} files at a time"})
        prepared = []
        for upload in uploads:
            data, content_type, ext = prepare_image(upload, field_name)
            prepared.append((upload.filename, self._storage_path(draft.account_id, group, key, ext), data, content_type))

        workers = min(MAX_UPLOAD_WORKERS, len(prepared))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="card-upload") as pool:
            futures = [pool.submit(self._store, path, data, ctype) for _, path, data, ctype in prepared]
            wait(futures)

        urls: list[str] = []
        failed: list[str] = []
        for (filename, path, _, _), future in zip(prepared, futures):
            exc = future.exception()
            if exc is not None:
                logger.error("upload of %s failed: %s", path, exc)
                failed.append(filename)
            else:
                urls.append(future.result())
        if failed:
            raise UploadFailedError(f"Failed to upload {', '.join(failed)}", failed=failed)
        current.extend(urls)
        draft.dirty = True
        return urls

    def remove_image(self, draft: CardDraft, group: str, key: str, index: int) -> None:
        """Drop one URL by position; the stored blob is not deleted."""
        current = draft._list_field(group, key)
        if index < 0 or index >= len(current):
            raise ValidationFailedError({f"{group}.{key}": "No image at that position"})
        del current[index]
        draft.dirty = True

    # -------------------------------------- publish --------------------------------------
    def publish(self, draft: CardDraft) -> Card:
        """Persist the whole working copy and make it publicly visible."""
        card = draft.card.copy()
        card.is_published = True
        stored = self.repository.upsert_card(card)
        draft.card = stored.copy()
        draft.dirty = False
        logger.info("card published for %s", draft.account_id)
        return stored
