"""Review session view-model.

Coordinates the store, the card selector and the scheduler into the
grade-then-advance study flow.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from backend.errors import PersistenceError
from backend.models.card import Card
from backend.srs.scheduler import (
    PASSING_QUALITY,
    QUALITY_CORRECT,
    QUALITY_WRONG,
    CardState,
    apply_review,
    clamp_quality,
)
from backend.srs.selector import (
    CardSelector,
    ReviewFilter,
    SelectionPolicy,
    advance_cursor,
    filter_cards,
    retreat_cursor,
)
from backend.store import StoreState, StudyStore

if TYPE_CHECKING:
    from backend.repository import FlashcardRepository

logger = logging.getLogger(__name__)


async def record_review(
    repo: FlashcardRepository,
    card: Card,
    quality: int,
    review_time: datetime | None = None,
) -> CardState:
    """Grade a card, then persist its new state and a review event together.

    If persisting fails the card is put back to its last saved state before
    the PersistenceError propagates.

    Returns:
        The card's new scheduling state.
    """
    q = clamp_quality(quality)
    card_id = card.id
    before = card.state
    before_quality = card.last_quality

    after = apply_review(before, q, review_time)
    card.apply_state(after)
    card.last_quality = q

    try:
        await repo.save_review(card, q >= PASSING_QUALITY, after.last_reviewed_at)
    except PersistenceError:
        # Attached cards were already reloaded by the rollback
        card.apply_state(before)
        card.last_quality = before_quality
        logger.exception("Could not record review for card %s", card_id)
        raise

    logger.info(
        "Reviewed card %s: q=%d ease %.2f -> %.2f, interval %d -> %d days",
        card_id,
        q,
        before.ease_factor,
        after.ease_factor,
        before.interval_days,
        after.interval_days,
    )
    return after


@dataclass
class SessionStats:
    """Running counts for the current session."""

    cards_reviewed: int = 0
    correct: int = 0
    wrong: int = 0

    @property
    def accuracy(self) -> float | None:
        if not self.cards_reviewed:
            return None
        return self.correct / self.cards_reviewed


@dataclass
class ReviewSession:
    """Filtered, cursor-driven study over the cards in a store.

    The cursor is reset to 0 whenever the filtered set of cards changes,
    whether that comes from a filter change, a grade moving a card across
    the outcome filter, or an edit to the store.
    """

    store: StudyStore
    selector: CardSelector = field(default_factory=CardSelector)
    subject_id: uuid.UUID | None = None
    outcome: ReviewFilter = ReviewFilter.ALL
    stats: SessionStats = field(default_factory=SessionStats)
    _cursor: int = 0
    _filtered_ids: tuple[uuid.UUID, ...] = ()

    def __post_init__(self) -> None:
        """Subscribe to the store and snapshot the filtered set."""
        if self.store.state.subject_by_id(self.subject_id) is None:
            self.subject_id = None
        self._filtered_ids = self._current_ids()
        self._unsubscribe = self.store.subscribe(self._on_store_change)

    @property
    def cards(self) -> list[Card]:
        """Cards matching the subject and outcome filters, newest first."""
        return filter_cards(self.store.state.cards, self.subject_id, self.outcome)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def policy(self) -> SelectionPolicy:
        return self.selector.policy

    def current_card(self, now: datetime | None = None) -> Card | None:
        """Return the card to show now, or None if nothing matches the filters."""
        return self.selector.select(self.cards, self._cursor, now)

    def advance(self) -> int:
        self._cursor = advance_cursor(self._cursor, len(self.cards))
        return self._cursor

    def retreat(self) -> int:
        self._cursor = retreat_cursor(self._cursor, len(self.cards))
        return self._cursor

    def set_subject(self, subject_id: uuid.UUID | None) -> None:
        """Restrict to one subject (None for all). Unknown ids mean all."""
        if self.store.state.subject_by_id(subject_id) is None:
            subject_id = None
        self.subject_id = subject_id
        self._refresh()

    def set_outcome(self, outcome: ReviewFilter) -> None:
        self.outcome = outcome
        self._refresh()

    def set_policy(self, policy: SelectionPolicy) -> None:
        self.selector.policy = policy
        self._cursor = 0

    async def mark_correct(
        self, repo: FlashcardRepository, card: Card, review_time: datetime | None = None
    ) -> CardState | None:
        return await self.grade(repo, card, QUALITY_CORRECT, review_time)

    async def mark_wrong(
        self, repo: FlashcardRepository, card: Card, review_time: datetime | None = None
    ) -> CardState | None:
        return await self.grade(repo, card, QUALITY_WRONG, review_time)

    async def grade(
        self,
        repo: FlashcardRepository,
        card: Card,
        quality: int,
        review_time: datetime | None = None,
    ) -> CardState | None:
        """Record a review for a card.

        Returns:
            The new scheduling state, or None if it could not be saved. In that
            case the failure has been logged and the card is left unchanged.
        """
        try:
            state = await record_review(repo, card, quality, review_time)
        except PersistenceError:
            return None

        self.stats.cards_reviewed += 1
        if clamp_quality(quality) >= PASSING_QUALITY:
            self.stats.correct += 1
        else:
            self.stats.wrong += 1

        self.store.upsert_card(card)
        return state

    def close(self) -> None:
        self._unsubscribe()

    def _current_ids(self) -> tuple[uuid.UUID, ...]:
        return tuple(card.id for card in self.cards)

    def _refresh(self) -> None:
        ids = self._current_ids()
        if ids != self._filtered_ids:
            self._filtered_ids = ids
            self._cursor = 0

    def _on_store_change(self, state: StoreState) -> None:
        # A deleted subject falls back to "all subjects"
        if self.subject_id is not None and state.subject_by_id(self.subject_id) is None:
            logger.debug("Selected subject %s is gone, showing all subjects", self.subject_id)
            self.subject_id = None
        self._refresh()
