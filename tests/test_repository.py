"""Tests for the persistence adapter."""

import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from backend.errors import PersistenceError, ValidationError
from backend.repository import FlashcardRepository, require_text
from backend.store import StudyStore


def test_require_text_trims() -> None:
    assert require_text("  Spanish \n", "Name") == "Spanish"


@pytest.mark.parametrize("value", ["", "   ", "\n\t", None])
def test_require_text_rejects_blank(value) -> None:
    with pytest.raises(ValidationError):
        require_text(value, "Name")


class TestSubjects:
    @pytest.mark.asyncio
    async def test_insert_trims_name(self, repo: FlashcardRepository) -> None:
        subject = await repo.insert_subject("  Spanish  ")
        assert subject.id is not None
        assert subject.name == "Spanish"

    @pytest.mark.asyncio
    async def test_insert_blank_name_rejected(self, repo: FlashcardRepository) -> None:
        with pytest.raises(ValidationError):
            await repo.insert_subject("   ")
        assert await repo.list_subjects() == []

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, repo: FlashcardRepository) -> None:
        for name in ["Spanish", "French", "German"]:
            await repo.insert_subject(name)
        assert [s.name for s in await repo.list_subjects()] == ["French", "German", "Spanish"]

    @pytest.mark.asyncio
    async def test_list_ignores_case_like_the_store(self, repo: FlashcardRepository) -> None:
        for name in ["Banana", "apple", "cherry"]:
            await repo.insert_subject(name)
        subjects = await repo.list_subjects()
        assert [s.name for s in subjects] == ["apple", "Banana", "cherry"]
        assert list(StudyStore(subjects=reversed(subjects)).state.subjects) == subjects

    @pytest.mark.asyncio
    async def test_rename(self, repo: FlashcardRepository) -> None:
        subject = await repo.insert_subject("Spansh")
        renamed = await repo.rename_subject(subject.id, " Spanish ")
        assert renamed is not None
        assert renamed.name == "Spanish"
        assert (await repo.get_subject(subject.id)).name == "Spanish"

    @pytest.mark.asyncio
    async def test_rename_blank_rejected(self, repo: FlashcardRepository) -> None:
        subject = await repo.insert_subject("Spanish")
        with pytest.raises(ValidationError):
            await repo.rename_subject(subject.id, "  ")

    @pytest.mark.asyncio
    async def test_rename_unknown_returns_none(self, repo: FlashcardRepository) -> None:
        assert await repo.rename_subject(uuid.uuid4(), "Spanish") is None

    @pytest.mark.asyncio
    async def test_delete_cascades_to_cards(self, repo: FlashcardRepository) -> None:
        spanish = await repo.insert_subject("Spanish")
        french = await repo.insert_subject("French")
        await repo.insert_card("Hello", "Hola", subject_id=spanish.id)
        await repo.insert_card("Bye", "Adios", subject_id=spanish.id)
        kept = await repo.insert_card("Hello", "Salut", subject_id=french.id)

        assert await repo.delete_subject(spanish.id) is True

        assert [s.name for s in await repo.list_subjects()] == ["French"]
        assert [c.id for c in await repo.list_cards()] == [kept.id]

    @pytest.mark.asyncio
    async def test_delete_unknown_returns_false(self, repo: FlashcardRepository) -> None:
        assert await repo.delete_subject(uuid.uuid4()) is False


class TestCards:
    @pytest.mark.asyncio
    async def test_insert_defaults(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card(" Hello ", " Hola ", tags=["greeting", "basics"])
        assert card.front == "Hello"
        assert card.back == "Hola"
        assert card.tags == ["greeting", "basics"]
        assert card.note is None
        assert card.subject_id is None
        assert card.ease_factor == 2.5
        assert card.interval_days == 0
        assert card.consecutive_correct == 0
        assert card.last_reviewed_at is None
        assert card.last_quality is None
        assert card.next_due_date is None
        assert card.created_at is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("front", "back"), [("", "Hola"), ("Hello", "  "), (" ", " ")])
    async def test_insert_blank_sides_rejected(
        self, repo: FlashcardRepository, front: str, back: str
    ) -> None:
        with pytest.raises(ValidationError):
            await repo.insert_card(front, back)
        assert await repo.list_cards() == []

    @pytest.mark.asyncio
    async def test_list_newest_first(self, repo: FlashcardRepository, db) -> None:
        base = datetime(2025, 1, 1)
        first = await repo.insert_card("one", "uno")
        second = await repo.insert_card("two", "dos")
        first.created_at = base
        second.created_at = base + timedelta(hours=1)
        await db.commit()

        assert [c.front for c in await repo.list_cards()] == ["two", "one"]

    @pytest.mark.asyncio
    async def test_list_by_subject(self, repo: FlashcardRepository) -> None:
        spanish = await repo.insert_subject("Spanish")
        await repo.insert_card("Hello", "Hola", subject_id=spanish.id)
        await repo.insert_card("Loose", "card")
        assert [c.front for c in await repo.list_cards(spanish.id)] == ["Hello"]

    @pytest.mark.asyncio
    async def test_update_fields(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola")
        updated = await repo.update_card(card.id, back=" ¡Hola! ", tags=["x"], note="  ")
        assert updated is not None
        assert updated.back == "¡Hola!"
        assert updated.tags == ["x"]
        assert updated.note is None

    @pytest.mark.asyncio
    async def test_update_none_tags_becomes_empty(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola", tags=["greeting"])
        updated = await repo.update_card(card.id, tags=None)
        assert updated.tags == []

    @pytest.mark.asyncio
    async def test_update_clamps_scheduling(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola")
        updated = await repo.update_card(card.id, ease_factor=0.9, interval_days=-2)
        assert updated.ease_factor == 1.3
        assert updated.interval_days == 0

    @pytest.mark.asyncio
    async def test_update_blank_front_rejected(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola")
        with pytest.raises(ValidationError):
            await repo.update_card(card.id, front=" ")
        assert (await repo.get_card(card.id)).front == "Hello"

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola")
        with pytest.raises(ValueError):
            await repo.update_card(card.id, created_at=datetime(2020, 1, 1))

    @pytest.mark.asyncio
    async def test_update_unknown_card(self, repo: FlashcardRepository) -> None:
        assert await repo.update_card(uuid.uuid4(), front="x") is None

    @pytest.mark.asyncio
    async def test_delete(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola")
        assert await repo.delete_card(card.id) is True
        assert await repo.get_card(card.id) is None
        assert await repo.delete_card(card.id) is False


class TestReviewEvents:
    @pytest.mark.asyncio
    async def test_append_and_list(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola")
        early = datetime(2025, 1, 1, 8)
        late = datetime(2025, 1, 3, 8)
        await repo.append_review_event(card.id, True, late)
        await repo.append_review_event(card.id, False, early)

        events = await repo.list_review_events()
        assert [e.is_correct for e in events] == [False, True]
        assert [e.reviewed_at for e in await repo.list_review_events(since=late)] == [late]

    @pytest.mark.asyncio
    async def test_history_survives_card_deletion(self, repo: FlashcardRepository) -> None:
        card = await repo.insert_card("Hello", "Hola")
        await repo.append_review_event(card.id, True)
        await repo.delete_card(card.id)

        events = await repo.list_review_events()
        assert len(events) == 1
        assert events[0].card_id == card.id

    @pytest.mark.asyncio
    async def test_save_review_writes_card_and_event(
        self, repo: FlashcardRepository, db
    ) -> None:
        card = await repo.insert_card("Hello", "Hola")
        reviewed_at = datetime(2025, 1, 2, 8)
        card.interval_days = 1
        card.last_reviewed_at = reviewed_at
        event = await repo.save_review(card, True, reviewed_at)
        assert event.card_id == card.id

        db.expunge_all()
        stored = await repo.get_card(card.id)
        assert stored.interval_days == 1
        assert stored.last_reviewed_at == reviewed_at
        assert [(e.is_correct, e.reviewed_at) for e in await repo.list_review_events()] == [
            (True, reviewed_at)
        ]


class TestPersistenceFailures:
    @pytest.mark.asyncio
    async def test_commit_failure_raises_persistence_error(
        self, repo: FlashcardRepository, db, monkeypatch
    ) -> None:
        async def failing_commit() -> None:
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(PersistenceError) as exc_info:
            await repo.insert_subject("Spanish")
        assert isinstance(exc_info.value.__cause__, OperationalError)

    @pytest.mark.asyncio
    async def test_failed_update_reloads_loaded_rows(
        self, repo: FlashcardRepository, db, monkeypatch
    ) -> None:
        subject = await repo.insert_subject("Spanish")
        card = await repo.insert_card("Hello", "Hola", subject_id=subject.id)

        async def failing_commit() -> None:
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(PersistenceError):
            await repo.update_card(card.id, back="Buenas")

        # Readable without another await, back at the saved values
        assert card.back == "Hola"
        assert card.front == "Hello"
        assert subject.name == "Spanish"
