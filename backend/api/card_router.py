"""API routes for cards, card selection and grading."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    CardCreate,
    CardResponse,
    CardUpdate,
    NextCardResponse,
    ReviewRequest,
    ReviewResponse,
)
from backend.database import get_session
from backend.repository import FlashcardRepository
from backend.srs.scheduler import QUALITY_CORRECT, QUALITY_WRONG
from backend.srs.selector import (
    CardSelector,
    ReviewFilter,
    SelectionPolicy,
    advance_cursor,
    clamp_cursor,
    filter_cards,
    retreat_cursor,
)
from backend.srs.session import record_review

router = APIRouter(prefix="/api/cards", tags=["cards"])


@router.get("", response_model=list[CardResponse])
async def list_cards(
    subject_id: uuid.UUID | None = None,
    outcome: ReviewFilter = ReviewFilter.ALL,
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    """List cards newest first, optionally filtered by subject and last outcome."""
    cards = await FlashcardRepository(db).list_cards()
    return [CardResponse.model_validate(c) for c in filter_cards(cards, subject_id, outcome)]


@router.get("/next", response_model=NextCardResponse)
async def next_card(
    policy: SelectionPolicy = SelectionPolicy.DUE_DATE,
    cursor: int = 0,
    subject_id: uuid.UUID | None = None,
    outcome: ReviewFilter = ReviewFilter.ALL,
    db: AsyncSession = Depends(get_session),
) -> NextCardResponse:
    """Pick the card to study next.

    The client owns the cursor; the response carries the clamped cursor and
    the wrapped positions for moving forward or back.
    """
    cards = filter_cards(await FlashcardRepository(db).list_cards(), subject_id, outcome)
    count = len(cards)
    cursor = clamp_cursor(cursor, count)
    card = CardSelector(policy).select(cards, cursor)

    return NextCardResponse(
        card=CardResponse.model_validate(card) if card is not None else None,
        policy=policy,
        outcome=outcome,
        count=count,
        cursor=cursor,
        next_cursor=advance_cursor(cursor, count),
        previous_cursor=retreat_cursor(cursor, count),
    )


@router.post("", response_model=CardResponse, status_code=201)
async def create_card(
    request: CardCreate,
    db: AsyncSession = Depends(get_session),
) -> CardResponse:
    repo = FlashcardRepository(db)
    if request.subject_id is not None and await repo.get_subject(request.subject_id) is None:
        raise HTTPException(status_code=404, detail="Subject not found")
    card = await repo.insert_card(
        front=request.front,
        back=request.back,
        tags=request.tags,
        subject_id=request.subject_id,
        note=request.note,
    )
    return CardResponse.model_validate(card)


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(card_id: uuid.UUID, db: AsyncSession = Depends(get_session)) -> CardResponse:
    card = await FlashcardRepository(db).get_card(card_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return CardResponse.model_validate(card)


@router.patch("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: uuid.UUID,
    request: CardUpdate,
    db: AsyncSession = Depends(get_session),
) -> CardResponse:
    repo = FlashcardRepository(db)
    updates = request.model_dump(exclude_unset=True)
    subject_id = updates.get("subject_id")
    if subject_id is not None and await repo.get_subject(subject_id) is None:
        raise HTTPException(status_code=404, detail="Subject not found")
    card = await repo.update_card(card_id, **updates)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return CardResponse.model_validate(card)


@router.delete("/{card_id}", status_code=204)
async def delete_card(card_id: uuid.UUID, db: AsyncSession = Depends(get_session)) -> None:
    if not await FlashcardRepository(db).delete_card(card_id):
        raise HTTPException(status_code=404, detail="Card not found")


@router.post("/{card_id}/review", response_model=ReviewResponse)
async def review_card(
    card_id: uuid.UUID,
    request: ReviewRequest,
    db: AsyncSession = Depends(get_session),
) -> ReviewResponse:
    """Grade a card as correct (quality 5) or wrong (quality 2)."""
    repo = FlashcardRepository(db)
    card = await repo.get_card(card_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")

    quality = QUALITY_CORRECT if request.correct else QUALITY_WRONG
    state = await record_review(repo, card, quality)

    return ReviewResponse(
        card=CardResponse.model_validate(card),
        quality=quality,
        next_due_date=state.next_due_date,
    )
