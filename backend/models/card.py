"""Flashcard model with SM-2 scheduling state."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from backend.models.base import Base, TimestampMixin
from backend.srs.scheduler import (
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    CardState,
    next_due_date,
)


class Card(Base, TimestampMixin):
    """A flashcard, optionally filed under a subject.

    ``subject_id`` is a plain key; lookups by subject go through the
    repository or the store, never through an object pointer.
    """

    __tablename__ = "cards"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("subjects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=DEFAULT_EASE_FACTOR)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consecutive_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_quality: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-5

    @validates("ease_factor")
    def _clamp_ease(self, key: str, value: float) -> float:
        return max(MIN_EASE_FACTOR, value)

    @validates("interval_days", "consecutive_correct")
    def _clamp_non_negative(self, key: str, value: int) -> int:
        return max(0, value)

    @property
    def state(self) -> CardState:
        """Snapshot of the scheduling fields."""
        return CardState(
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            consecutive_correct=self.consecutive_correct,
            last_reviewed_at=self.last_reviewed_at,
        )

    def apply_state(self, state: CardState) -> None:
        self.ease_factor = state.ease_factor
        self.interval_days = state.interval_days
        self.consecutive_correct = state.consecutive_correct
        self.last_reviewed_at = state.last_reviewed_at

    @property
    def next_due_date(self) -> datetime | None:
        return next_due_date(self.last_reviewed_at, self.interval_days)

    def __repr__(self) -> str:
        return f"Card(id={self.id!s}, front={self.front!r})"
