"""Persistence adapter over the SQLAlchemy session.

Validation happens before any write and raises ``ValidationError``.
Database failures roll back and surface as ``PersistenceError``.
Unknown ids come back as ``None``/``False`` rather than raising.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import utcnow
from backend.errors import PersistenceError, ValidationError
from backend.models.card import Card
from backend.models.review_event import ReviewEvent
from backend.models.subject import Subject, subject_sort_key
from backend.srs.scheduler import DEFAULT_EASE_FACTOR

logger = logging.getLogger(__name__)

# Fields callers may change through update_card
EDITABLE_CARD_FIELDS = {
    "front",
    "back",
    "note",
    "tags",
    "subject_id",
    "ease_factor",
    "interval_days",
    "consecutive_correct",
    "last_reviewed_at",
    "last_quality",
}


def require_text(value: str | None, field: str) -> str:
    """Trim a required text field, raising ValidationError if nothing is left."""
    trimmed = (value or "").strip()
    if not trimmed:
        raise ValidationError(f"{field} is required")
    return trimmed


class FlashcardRepository:
    """Create, read, update and delete subjects, cards and review events."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self._rollback()
            raise PersistenceError(f"Failed to {action}") from exc

    async def _rollback(self) -> None:
        """Roll back, then reload every object the rollback expired.

        Loaded rows are shared with the store and the front ends. An async
        session cannot lazy-load an expired attribute on access, so they are
        refreshed here while we are still awaiting.
        """
        await self.session.rollback()
        for obj in list(self.session.identity_map.values()):
            try:
                await self.session.refresh(obj)
            except SQLAlchemyError:
                logger.warning(
                    "Could not reload %s %s after rollback",
                    type(obj).__name__,
                    inspect(obj).identity,
                )

    # --- Subjects ---

    async def insert_subject(self, name: str) -> Subject:
        subject = Subject(name=require_text(name, "Subject name"))
        self.session.add(subject)
        await self._commit("save subject")
        logger.info("Created subject %s (%s)", subject.name, subject.id)
        return subject

    async def get_subject(self, subject_id: uuid.UUID) -> Subject | None:
        try:
            return await self.session.get(Subject, subject_id)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load subject") from exc

    async def rename_subject(self, subject_id: uuid.UUID, new_name: str) -> Subject | None:
        name = require_text(new_name, "Subject name")
        subject = await self.get_subject(subject_id)
        if subject is None:
            return None
        subject.name = name
        await self._commit("rename subject")
        return subject

    async def delete_subject(self, subject_id: uuid.UUID) -> bool:
        """Delete a subject and every card filed under it."""
        subject = await self.get_subject(subject_id)
        if subject is None:
            return False
        try:
            result = await self.session.execute(delete(Card).where(Card.subject_id == subject_id))
            await self.session.delete(subject)
        except SQLAlchemyError as exc:
            await self._rollback()
            raise PersistenceError("Failed to delete subject") from exc
        await self._commit("delete subject")
        logger.info("Deleted subject %s and %d cards", subject_id, result.rowcount)
        return True

    async def list_subjects(self) -> list[Subject]:
        """All subjects sorted by name, ignoring case."""
        try:
            result = await self.session.execute(select(Subject))
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to list subjects") from exc
        return sorted(result.scalars().all(), key=subject_sort_key)

    # --- Cards ---

    async def insert_card(
        self,
        front: str,
        back: str,
        tags: list[str] | None = None,
        subject_id: uuid.UUID | None = None,
        note: str | None = None,
    ) -> Card:
        card = Card(
            front=require_text(front, "Front"),
            back=require_text(back, "Back"),
            note=(note or "").strip() or None,
            tags=list(tags or []),
            subject_id=subject_id,
            ease_factor=DEFAULT_EASE_FACTOR,
            interval_days=0,
            consecutive_correct=0,
            created_at=utcnow(),
        )
        self.session.add(card)
        await self._commit("save card")
        logger.info("Created card %s", card.id)
        return card

    async def get_card(self, card_id: uuid.UUID) -> Card | None:
        try:
            return await self.session.get(Card, card_id)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load card") from exc

    async def update_card(self, card_id: uuid.UUID, **fields: Any) -> Card | None:
        """Apply changed fields to a card.

        Raises:
            ValueError: If a field is not editable.
            ValidationError: If front or back would become empty.
        """
        unknown = set(fields) - EDITABLE_CARD_FIELDS
        if unknown:
            raise ValueError(f"Cannot update card fields: {', '.join(sorted(unknown))}")
        if "front" in fields:
            fields["front"] = require_text(fields["front"], "Front")
        if "back" in fields:
            fields["back"] = require_text(fields["back"], "Back")
        if "note" in fields:
            fields["note"] = (fields["note"] or "").strip() or None
        if "tags" in fields:
            fields["tags"] = list(fields["tags"] or [])

        card = await self.get_card(card_id)
        if card is None:
            return None
        for key, value in fields.items():
            setattr(card, key, value)
        await self._commit("update card")
        return card

    async def save_card(self, card: Card) -> None:
        """Persist in-place changes to a card (e.g. after grading)."""
        await self.session.merge(card)
        await self._commit("save card")

    async def delete_card(self, card_id: uuid.UUID) -> bool:
        card = await self.get_card(card_id)
        if card is None:
            return False
        await self.session.delete(card)
        await self._commit("delete card")
        logger.info("Deleted card %s", card_id)
        return True

    async def list_cards(self, subject_id: uuid.UUID | None = None) -> list[Card]:
        """Cards newest first, optionally restricted to one subject."""
        stmt = select(Card).order_by(Card.created_at.desc())
        if subject_id is not None:
            stmt = stmt.where(Card.subject_id == subject_id)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to list cards") from exc
        return list(result.scalars().all())

    async def save_review(
        self,
        card: Card,
        is_correct: bool,
        reviewed_at: datetime | None = None,
    ) -> ReviewEvent:
        """Persist a graded card and its review event in one transaction."""
        await self.session.merge(card)
        event = ReviewEvent(
            card_id=card.id,
            is_correct=is_correct,
            reviewed_at=reviewed_at or utcnow(),
        )
        self.session.add(event)
        await self._commit("save review")
        return event

    # --- Review events ---

    async def append_review_event(
        self,
        card_id: uuid.UUID,
        is_correct: bool,
        timestamp: datetime | None = None,
    ) -> ReviewEvent:
        event = ReviewEvent(
            card_id=card_id,
            is_correct=is_correct,
            reviewed_at=timestamp or utcnow(),
        )
        self.session.add(event)
        await self._commit("log review")
        return event

    async def list_review_events(self, since: datetime | None = None) -> list[ReviewEvent]:
        """Review events oldest first, optionally only those at or after ``since``."""
        stmt = select(ReviewEvent).order_by(ReviewEvent.reviewed_at.asc())
        if since is not None:
            stmt = stmt.where(ReviewEvent.reviewed_at >= since)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to list review events") from exc
        return list(result.scalars().all())
