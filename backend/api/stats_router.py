"""API routes for review statistics."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import StatsResponse
from backend.database import get_session
from backend.repository import FlashcardRepository
from backend.stats import summarize

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(
    window_days: int | None = None,
    db: AsyncSession = Depends(get_session),
) -> StatsResponse:
    """Totals, recent accuracy, streak and per-day correct/wrong counts."""
    summary = await summarize(FlashcardRepository(db), window_days=window_days)
    return StatsResponse.model_validate(summary)
