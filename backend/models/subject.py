import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base, TimestampMixin


class Subject(Base, TimestampMixin):
    """A named group of cards. Deleting it deletes its cards."""

    __tablename__ = "subjects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return f"Subject(id={self.id!s}, name={self.name!r})"


def subject_sort_key(subject: Subject) -> str:
    """Case-insensitive name order shared by every subject listing."""
    return subject.name.casefold()
