"""Review statistics: daily correct/wrong counts, streaks and a summary.

The aggregation helpers are pure; ``summarize`` reads through the repository.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from backend.config import settings, utcnow
from backend.models.review_event import ReviewEvent
from backend.repository import FlashcardRepository
from backend.srs.selector import count_due

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyStat:
    """Correct and wrong answers given on one calendar day."""

    date: date
    correct: int = 0
    wrong: int = 0

    @property
    def total(self) -> int:
        return self.correct + self.wrong


@dataclass
class StudySummary:
    total_subjects: int
    total_cards: int
    due_cards: int
    new_cards: int  # Never reviewed
    total_reviews: int
    recent_accuracy: float | None
    streak_days: int
    daily: list[DailyStat]


def daily_stats(events: Iterable[ReviewEvent]) -> list[DailyStat]:
    """Group review events by day, oldest day first."""
    counts: dict[date, list[int]] = {}
    for event in events:
        entry = counts.setdefault(event.reviewed_at.date(), [0, 0])
        if event.is_correct:
            entry[0] += 1
        else:
            entry[1] += 1
    return [
        DailyStat(date=day, correct=correct, wrong=wrong)
        for day, (correct, wrong) in sorted(counts.items())
    ]


def review_streak(days: Iterable[date], today: date) -> int:
    """Count consecutive days with at least one review, ending today."""
    reviewed = set(days)
    streak = 0
    while today - timedelta(days=streak) in reviewed:
        streak += 1
    return streak


def accuracy(events: Iterable[ReviewEvent]) -> float | None:
    total = correct = 0
    for event in events:
        total += 1
        correct += event.is_correct
    return correct / total if total else None


async def summarize(
    repo: FlashcardRepository,
    now: datetime | None = None,
    window_days: int | None = None,
) -> StudySummary:
    """Build the statistics summary.

    Args:
        repo: Repository to read from.
        now: Current time (defaults to utcnow).
        window_days: Look-back window for recent accuracy
            (defaults to ``settings.stats_window_days``).
    """
    now = now or utcnow()
    window_days = window_days if window_days is not None else settings.stats_window_days

    subjects = await repo.list_subjects()
    cards = await repo.list_cards()
    events = await repo.list_review_events()

    cutoff = now - timedelta(days=window_days)
    daily = daily_stats(events)

    summary = StudySummary(
        total_subjects=len(subjects),
        total_cards=len(cards),
        due_cards=count_due(cards, now),
        new_cards=sum(1 for card in cards if card.last_reviewed_at is None),
        total_reviews=len(events),
        recent_accuracy=accuracy(e for e in events if e.reviewed_at >= cutoff),
        streak_days=review_streak((stat.date for stat in daily), now.date()),
        daily=daily,
    )
    logger.debug("Summary: %s", summary)
    return summary
