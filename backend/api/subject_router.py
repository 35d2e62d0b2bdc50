"""API routes for subjects."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import SubjectCreate, SubjectRename, SubjectResponse
from backend.database import get_session
from backend.repository import FlashcardRepository

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


@router.get("", response_model=list[SubjectResponse])
async def list_subjects(db: AsyncSession = Depends(get_session)) -> list[SubjectResponse]:
    """List subjects sorted by name."""
    subjects = await FlashcardRepository(db).list_subjects()
    return [SubjectResponse.model_validate(s) for s in subjects]


@router.post("", response_model=SubjectResponse, status_code=201)
async def create_subject(
    request: SubjectCreate,
    db: AsyncSession = Depends(get_session),
) -> SubjectResponse:
    subject = await FlashcardRepository(db).insert_subject(request.name)
    return SubjectResponse.model_validate(subject)


@router.patch("/{subject_id}", response_model=SubjectResponse)
async def rename_subject(
    subject_id: uuid.UUID,
    request: SubjectRename,
    db: AsyncSession = Depends(get_session),
) -> SubjectResponse:
    subject = await FlashcardRepository(db).rename_subject(subject_id, request.name)
    if subject is None:
        raise HTTPException(status_code=404, detail="Subject not found")
    return SubjectResponse.model_validate(subject)


@router.delete("/{subject_id}", status_code=204)
async def delete_subject(
    subject_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
) -> None:
    """Delete a subject and all of its cards."""
    if not await FlashcardRepository(db).delete_subject(subject_id):
        raise HTTPException(status_code=404, detail="Subject not found")
