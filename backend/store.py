"""In-memory mirror of subjects and cards with explicit subscriptions.

The store is the single owner of the loaded collections. Every mutation
produces a fresh ``StoreState`` snapshot and hands it to each subscriber.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from backend.models.card import Card
from backend.models.subject import Subject, subject_sort_key

if TYPE_CHECKING:
    from backend.repository import FlashcardRepository

logger = logging.getLogger(__name__)

Listener = Callable[["StoreState"], None]


def _sorted_subjects(subjects: Iterable[Subject]) -> tuple[Subject, ...]:
    return tuple(sorted(subjects, key=subject_sort_key))


def _sorted_cards(cards: Iterable[Card]) -> tuple[Card, ...]:
    return tuple(sorted(cards, key=lambda c: c.created_at, reverse=True))


@dataclass(frozen=True)
class StoreState:
    """Immutable snapshot: subjects by name, cards newest first."""

    subjects: tuple[Subject, ...] = ()
    cards: tuple[Card, ...] = ()

    def subject_by_id(self, subject_id: uuid.UUID | None) -> Subject | None:
        if subject_id is None:
            return None
        return next((s for s in self.subjects if s.id == subject_id), None)

    def cards_for_subject(self, subject_id: uuid.UUID) -> list[Card]:
        return [c for c in self.cards if c.subject_id == subject_id]

    def card_by_id(self, card_id: uuid.UUID) -> Card | None:
        return next((c for c in self.cards if c.id == card_id), None)


class StudyStore:
    """Observable holder for the loaded subjects and cards."""

    def __init__(
        self,
        subjects: Iterable[Subject] = (),
        cards: Iterable[Card] = (),
    ) -> None:
        self._state = StoreState(_sorted_subjects(subjects), _sorted_cards(cards))
        self._listeners: list[Listener] = []

    @classmethod
    async def from_repository(cls, repo: FlashcardRepository) -> StudyStore:
        subjects = await repo.list_subjects()
        cards = await repo.list_cards()
        logger.debug("Loaded %d subjects and %d cards", len(subjects), len(cards))
        return cls(subjects, cards)

    @property
    def state(self) -> StoreState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self, subjects: Iterable[Subject], cards: Iterable[Card]) -> None:
        self._set(StoreState(_sorted_subjects(subjects), _sorted_cards(cards)))

    def upsert_subject(self, subject: Subject) -> None:
        others = [s for s in self._state.subjects if s.id != subject.id]
        self._set(StoreState(_sorted_subjects([*others, subject]), self._state.cards))

    def upsert_card(self, card: Card) -> None:
        others = [c for c in self._state.cards if c.id != card.id]
        self._set(StoreState(self._state.subjects, _sorted_cards([*others, card])))

    def remove_subject(self, subject_id: uuid.UUID) -> None:
        """Drop a subject together with its cards."""
        self._set(
            StoreState(
                tuple(s for s in self._state.subjects if s.id != subject_id),
                tuple(c for c in self._state.cards if c.subject_id != subject_id),
            )
        )

    def remove_card(self, card_id: uuid.UUID) -> None:
        self._set(
            StoreState(
                self._state.subjects,
                tuple(c for c in self._state.cards if c.id != card_id),
            )
        )

    def _set(self, state: StoreState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Store listener %r failed", listener)
