"""SQLAlchemy ORM models for the Elorize database."""

from backend.models.base import Base
from backend.models.card import Card
from backend.models.review_event import ReviewEvent
from backend.models.subject import Subject

__all__ = ["Base", "Card", "ReviewEvent", "Subject"]
