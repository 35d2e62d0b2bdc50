"""Authoring view-model: subject and card edits that keep the store in sync.

Validation errors propagate so the caller can show them inline.
Persistence errors are logged and reported as ``None``/``False`` with the
store left as it was.
"""

import logging
import uuid
from typing import Any

from backend.errors import PersistenceError
from backend.models.card import Card
from backend.models.subject import Subject
from backend.repository import FlashcardRepository
from backend.store import StudyStore

logger = logging.getLogger(__name__)


def parse_tags(text: str | None) -> list[str]:
    """Split comma-separated tags, trimming blanks and keeping their order."""
    if not text:
        return []
    return [tag.strip() for tag in text.split(",") if tag.strip()]


class Library:
    """Subject and card management on top of a repository and a store."""

    def __init__(self, repo: FlashcardRepository, store: StudyStore) -> None:
        self.repo = repo
        self.store = store

    async def add_subject(self, name: str) -> Subject | None:
        try:
            subject = await self.repo.insert_subject(name)
        except PersistenceError:
            logger.exception("Failed to save subject %r", name)
            return None
        self.store.upsert_subject(subject)
        return subject

    async def rename_subject(self, subject_id: uuid.UUID, new_name: str) -> Subject | None:
        try:
            subject = await self.repo.rename_subject(subject_id, new_name)
        except PersistenceError:
            logger.exception("Failed to rename subject %s", subject_id)
            return None
        if subject is not None:
            self.store.upsert_subject(subject)
        return subject

    async def delete_subject(self, subject_id: uuid.UUID) -> bool:
        try:
            deleted = await self.repo.delete_subject(subject_id)
        except PersistenceError:
            logger.exception("Failed to delete subject %s", subject_id)
            return False
        if deleted:
            self.store.remove_subject(subject_id)
        return deleted

    async def add_card(
        self,
        front: str,
        back: str,
        tags: list[str] | str | None = None,
        subject_id: uuid.UUID | None = None,
        note: str | None = None,
    ) -> Card | None:
        """Create a card. ``tags`` may be a list or a comma-separated string."""
        if isinstance(tags, str):
            tags = parse_tags(tags)
        if subject_id is not None and self.store.state.subject_by_id(subject_id) is None:
            logger.warning("Unknown subject %s, filing card without a subject", subject_id)
            subject_id = None
        try:
            card = await self.repo.insert_card(front, back, tags, subject_id, note)
        except PersistenceError:
            logger.exception("Failed to save card")
            return None
        self.store.upsert_card(card)
        return card

    async def update_card(self, card_id: uuid.UUID, **fields: Any) -> Card | None:
        """Apply edits to a card. An unknown subject leaves the card where it is."""
        if isinstance(fields.get("tags"), str):
            fields["tags"] = parse_tags(fields["tags"])
        subject_id = fields.get("subject_id")
        if subject_id is not None and self.store.state.subject_by_id(subject_id) is None:
            logger.warning("Unknown subject %s, keeping card %s where it is", subject_id, card_id)
            del fields["subject_id"]
        try:
            card = await self.repo.update_card(card_id, **fields)
        except PersistenceError:
            logger.exception("Failed to update card %s", card_id)
            return None
        if card is not None:
            self.store.upsert_card(card)
        return card

    async def delete_card(self, card_id: uuid.UUID) -> bool:
        try:
            deleted = await self.repo.delete_card(card_id)
        except PersistenceError:
            logger.exception("Failed to delete card %s", card_id)
            return False
        if deleted:
            self.store.remove_card(card_id)
        return deleted
