"""SM-2 inspired review scheduler.

Key concepts:
- Ease factor (EF): multiplier for interval growth after consecutive correct
  answers. Starts at 2.5 and never drops below 1.3.
- Interval: whole days until the card is due again.
- Quality: 0-5 recall score for one review. The front ends only ever issue
  2 (wrong) and 5 (correct), but the full range is supported.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from backend.config import utcnow

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3  # Anything below resets the streak

QUALITY_WRONG = 2
QUALITY_CORRECT = 5

# Intervals for the first and second consecutive correct answers
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6


@dataclass
class CardState:
    """The scheduling state of a card."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    consecutive_correct: int = 0
    last_reviewed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.ease_factor = max(MIN_EASE_FACTOR, self.ease_factor)
        self.interval_days = max(0, self.interval_days)
        self.consecutive_correct = max(0, self.consecutive_correct)

    @property
    def next_due_date(self) -> datetime | None:
        """When the card is due again, or None if it was never reviewed."""
        return next_due_date(self.last_reviewed_at, self.interval_days)


def next_due_date(last_reviewed_at: datetime | None, interval_days: int) -> datetime | None:
    if last_reviewed_at is None:
        return None
    return last_reviewed_at + timedelta(days=interval_days)


def clamp_quality(quality: int) -> int:
    return max(MIN_QUALITY, min(MAX_QUALITY, quality))


def ease_delta(quality: int) -> float:
    """Ease factor change for a quality score.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    """
    miss = MAX_QUALITY - clamp_quality(quality)
    return 0.1 - miss * (0.08 + miss * 0.02)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``), which
    would make interval growth depend on parity.
    """
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def apply_review(
    state: CardState,
    quality: int,
    review_time: datetime | None = None,
) -> CardState:
    """Apply one graded review and return the next scheduling state.

    Args:
        state: Current card state (not modified).
        quality: Recall quality, clamped into [0, 5].
        review_time: When the review happened (defaults to now).

    Returns:
        A new CardState.
    """
    q = clamp_quality(quality)
    review_time = review_time or utcnow()

    ease_factor = max(MIN_EASE_FACTOR, state.ease_factor + ease_delta(q))

    if q < PASSING_QUALITY:
        # Lapse: start the streak over
        consecutive_correct = 0
        interval_days = 0
    else:
        consecutive_correct = state.consecutive_correct + 1
        if consecutive_correct == 1:
            interval_days = FIRST_INTERVAL_DAYS
        elif consecutive_correct == 2:
            interval_days = SECOND_INTERVAL_DAYS
        else:
            # Grows from the previous interval using the updated ease
            interval_days = max(1, round_half_up(state.interval_days * ease_factor))

    return CardState(
        ease_factor=ease_factor,
        interval_days=interval_days,
        consecutive_correct=consecutive_correct,
        last_reviewed_at=review_time,
    )
