"""Movie insight and per-movie booking queries."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.auth import verify_api_key
from cinecdc.core.database import get_session
from cinecdc.repositories.enriched_repo import EnrichedRepository
from cinecdc.repositories.insight_repo import InsightRepository
from cinecdc.schemas.booking import EnrichedBookingListResponse
from cinecdc.schemas.insight import MovieInsightResponse, MovieInsightListResponse

router = APIRouter(tags=["insights"])


@router.get("/insights", response_model=MovieInsightListResponse)
async def list_insights(
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Insights for every movie with at least one booking."""
    insights = await InsightRepository(session).list_all()
    return MovieInsightListResponse(insights=insights, total=len(insights))


@router.get("/movies/{movie_id}/insights", response_model=MovieInsightResponse)
async def get_movie_insights(
    movie_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    insight = await InsightRepository(session).get(movie_id)
    if not insight:
        raise HTTPException(404, f"No insights for movie '{movie_id}'")
    return insight


@router.get("/movies/{movie_id}/bookings", response_model=EnrichedBookingListResponse)
async def list_movie_bookings(
    movie_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Enriched rows currently attributed to a movie, deleted bookings included."""
    rows = await EnrichedRepository(session).list_by_movie(movie_id)
    return EnrichedBookingListResponse(bookings=rows, total=len(rows))
