"""Pydantic schemas for API request/response models."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from backend.srs.selector import ReviewFilter, SelectionPolicy

# --- Subjects ---


class SubjectCreate(BaseModel):
    name: str


class SubjectRename(BaseModel):
    name: str


class SubjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    created_at: datetime


# --- Cards ---


class CardCreate(BaseModel):
    front: str
    back: str
    note: str | None = None
    tags: list[str] = Field(default_factory=list)
    subject_id: uuid.UUID | None = None


class CardUpdate(BaseModel):
    """Partial card update; only fields that are set are applied."""

    front: str | None = None
    back: str | None = None
    note: str | None = None
    tags: list[str] = Field(default_factory=list)
    subject_id: uuid.UUID | None = None


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    subject_id: uuid.UUID | None
    front: str
    back: str
    note: str | None
    tags: list[str]
    ease_factor: float
    interval_days: int
    consecutive_correct: int
    last_reviewed_at: datetime | None
    last_quality: int | None
    next_due_date: datetime | None
    created_at: datetime


class NextCardResponse(BaseModel):
    """The selected card plus cursor positions for a client-held cursor."""

    card: CardResponse | None
    policy: SelectionPolicy
    outcome: ReviewFilter
    count: int
    cursor: int
    next_cursor: int
    previous_cursor: int


# --- Review ---


class ReviewRequest(BaseModel):
    correct: bool


class ReviewResponse(BaseModel):
    card: CardResponse
    quality: int
    next_due_date: datetime | None


# --- Stats ---


class DailyStatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    correct: int
    wrong: int


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_subjects: int
    total_cards: int
    due_cards: int
    new_cards: int
    total_reviews: int
    recent_accuracy: float | None
    streak_days: int
    daily: list[DailyStatResponse]
