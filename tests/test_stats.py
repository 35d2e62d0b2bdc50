"""Tests for review statistics."""

from datetime import date, datetime, timedelta

import pytest

from backend.models.review_event import ReviewEvent
from backend.repository import FlashcardRepository
from backend.stats import accuracy, daily_stats, review_streak, summarize

NOW = datetime(2025, 3, 10, 18, 0, 0)


def _event(reviewed_at: datetime, is_correct: bool) -> ReviewEvent:
    return ReviewEvent(is_correct=is_correct, reviewed_at=reviewed_at)


class TestDailyStats:
    def test_groups_by_day(self) -> None:
        events = [
            _event(datetime(2025, 3, 9, 23, 59), False),
            _event(datetime(2025, 3, 8, 8, 0), True),
            _event(datetime(2025, 3, 9, 7, 0), True),
            _event(datetime(2025, 3, 9, 12, 0), True),
        ]
        stats = daily_stats(events)
        assert [(s.date, s.correct, s.wrong) for s in stats] == [
            (date(2025, 3, 8), 1, 0),
            (date(2025, 3, 9), 2, 1),
        ]
        assert stats[1].total == 3

    def test_empty(self) -> None:
        assert daily_stats([]) == []


class TestStreak:
    def test_consecutive_days_ending_today(self) -> None:
        today = date(2025, 3, 10)
        days = [today, today - timedelta(days=1), today - timedelta(days=2), date(2025, 3, 1)]
        assert review_streak(days, today) == 3

    def test_no_review_today(self) -> None:
        assert review_streak([date(2025, 3, 9)], date(2025, 3, 10)) == 0


def test_accuracy() -> None:
    assert accuracy([]) is None
    events = [_event(NOW, True), _event(NOW, True), _event(NOW, False), _event(NOW, True)]
    assert accuracy(events) == 0.75


@pytest.mark.asyncio
async def test_summarize(repo: FlashcardRepository) -> None:
    subject = await repo.insert_subject("Spanish")
    reviewed = await repo.insert_card("Hello", "Hola", subject_id=subject.id)
    await repo.insert_card("Bye", "Adios", subject_id=subject.id)

    reviewed.interval_days = 6
    reviewed.last_reviewed_at = NOW - timedelta(days=1)
    await repo.save_card(reviewed)

    await repo.append_review_event(reviewed.id, False, NOW - timedelta(days=40))
    await repo.append_review_event(reviewed.id, True, NOW - timedelta(days=1))
    await repo.append_review_event(reviewed.id, True, NOW - timedelta(hours=2))

    summary = await summarize(repo, now=NOW, window_days=30)
    assert summary.total_subjects == 1
    assert summary.total_cards == 2
    assert summary.new_cards == 1
    assert summary.due_cards == 1  # only the never-reviewed card
    assert summary.total_reviews == 3
    assert summary.recent_accuracy == 1.0
    assert summary.streak_days == 2
    assert [s.date for s in summary.daily] == [
        (NOW - timedelta(days=40)).date(),
        date(2025, 3, 9),
        date(2025, 3, 10),
    ]
