"""Card selection for study sessions.

Two policies pick the "next card" from an already-filtered list:
- Due-date: first card that was never reviewed or whose due date has passed,
  falling back to the first card.
- Rotation: the card under a caller-owned cursor that wraps at both ends.
"""

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import Enum
from typing import Protocol, TypeVar

from backend.config import utcnow
from backend.srs.scheduler import PASSING_QUALITY

logger = logging.getLogger(__name__)


class Schedulable(Protocol):
    @property
    def next_due_date(self) -> datetime | None: ...


class Filterable(Schedulable, Protocol):
    subject_id: uuid.UUID | None
    last_quality: int | None


T = TypeVar("T", bound=Schedulable)
F = TypeVar("F", bound=Filterable)


class ReviewFilter(Enum):
    """Outcome filter over each card's most recent grade."""

    ALL = "all"
    WRONG = "wrong"        # Last quality <= 2
    CORRECT = "correct"    # Last quality >= 3

    @property
    def label(self) -> str:
        return FILTER_LABELS[self]


FILTER_LABELS = {
    ReviewFilter.ALL: "All",
    ReviewFilter.WRONG: "Repeat",
    ReviewFilter.CORRECT: "Got it",
}


class SelectionPolicy(Enum):
    DUE_DATE = "due_date"
    ROTATION = "rotation"


def is_due(card: Schedulable, now: datetime) -> bool:
    """Return True if the card was never reviewed or is due at ``now``."""
    due = card.next_due_date
    return due is None or due <= now


def select_due_card(cards: Sequence[T], now: datetime | None = None) -> T | None:
    """Return the first due card, else the first card, else None."""
    if not cards:
        return None
    now = now or utcnow()
    for card in cards:
        if is_due(card, now):
            return card
    return cards[0]


def clamp_cursor(cursor: int, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(cursor, count - 1))


def select_by_cursor(cards: Sequence[T], cursor: int) -> T | None:
    """Return the card under the cursor, clamped into the list bounds."""
    if not cards:
        return None
    return cards[clamp_cursor(cursor, len(cards))]


def advance_cursor(cursor: int, count: int) -> int:
    return (cursor + 1) % max(1, count)


def retreat_cursor(cursor: int, count: int) -> int:
    # Python's modulo is non-negative for a positive divisor, so 0 wraps to count - 1
    return (cursor - 1) % max(1, count)


def matches_outcome(last_quality: int | None, outcome: ReviewFilter) -> bool:
    """Check a card's last grade against an outcome filter.

    Cards that were never graded only match ``ALL``.
    """
    if outcome is ReviewFilter.ALL:
        return True
    if last_quality is None:
        return False
    if outcome is ReviewFilter.WRONG:
        return last_quality < PASSING_QUALITY
    return last_quality >= PASSING_QUALITY


def filter_cards(
    cards: Iterable[F],
    subject_id: uuid.UUID | None = None,
    outcome: ReviewFilter = ReviewFilter.ALL,
) -> list[F]:
    """Apply the subject filter (None means all subjects) and the outcome filter."""
    return [
        card
        for card in cards
        if (subject_id is None or card.subject_id == subject_id)
        and matches_outcome(card.last_quality, outcome)
    ]


def count_due(cards: Iterable[Schedulable], now: datetime | None = None) -> int:
    now = now or utcnow()
    return sum(1 for card in cards if is_due(card, now))


class CardSelector:
    """Picks the next card using an explicitly chosen policy."""

    def __init__(self, policy: SelectionPolicy = SelectionPolicy.DUE_DATE) -> None:
        self.policy = policy

    def select(
        self,
        cards: Sequence[T],
        cursor: int = 0,
        now: datetime | None = None,
    ) -> T | None:
        """Select the next card.

        Args:
            cards: Filtered candidates, in display order.
            cursor: Position for the rotation policy (ignored by due-date).
            now: Current time for the due-date policy (defaults to utcnow).

        Returns:
            The chosen card, or None if there are no candidates.
        """
        if self.policy is SelectionPolicy.ROTATION:
            card = select_by_cursor(cards, cursor)
        else:
            card = select_due_card(cards, now)
        logger.debug(
            "Selected %r from %d candidates (policy=%s, cursor=%d)",
            card,
            len(cards),
            self.policy.value,
            cursor,
        )
        return card
