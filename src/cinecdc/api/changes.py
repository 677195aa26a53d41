"""Capture log and event store reads."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.auth import verify_api_key
from cinecdc.core.clock import as_naive_utc
from cinecdc.core.database import get_session
from cinecdc.schemas.booking import ChangeListResponse, EventListResponse
from cinecdc.services.capture_log import CaptureLog
from cinecdc.services.event_store import EventStore

router = APIRouter(tags=["changes"])


@router.get("/changes", response_model=ChangeListResponse)
async def drain_changes(
    cursor: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Changes after cursor. Reading does not consume them."""
    changes, next_cursor = await CaptureLog(session).drain(cursor, limit=limit)
    return ChangeListResponse(changes=changes, cursor=cursor, next_cursor=next_cursor, total=len(changes))


@router.get("/events", response_model=EventListResponse)
async def scan_events(
    since: datetime | None = None,
    limit: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Events with change_timestamp after since, oldest first."""
    events = []
    async for event in EventStore(session).scan_since(as_naive_utc(since), batch_size=limit):
        events.append(event)
        if len(events) >= limit:
            break
    return EventListResponse(events=events, total=len(events))
