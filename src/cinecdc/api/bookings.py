"""Booking ingestion and enriched booking endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.auth import verify_api_key
from cinecdc.core.config import get_settings
from cinecdc.core.database import get_session
from cinecdc.core.errors import BookingConflictError, BookingNotFoundError
from cinecdc.repositories.booking_repo import ChangeRepository
from cinecdc.repositories.enriched_repo import EnrichedRepository
from cinecdc.schemas.booking import (
    BookingCreate, BookingUpdate, BookingMutation,
    ChangeResponse, ChangeListResponse, EnrichedBookingResponse,
)
from cinecdc.services.capture_log import CaptureLog

router = APIRouter(prefix="/bookings", tags=["bookings"])


async def _capture(session: AsyncSession, mutation: BookingMutation):
    log = CaptureLog(session, shards=get_settings().capture_shards)
    try:
        return await log.capture(mutation)
    except BookingConflictError as e:
        raise HTTPException(409, str(e))
    except BookingNotFoundError as e:
        raise HTTPException(404, str(e))


@router.post("", response_model=ChangeResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Insert a booking into the source table and capture the change."""
    return await _capture(session, BookingMutation.create(data))


@router.patch("/{booking_id}", response_model=ChangeResponse)
async def update_booking(
    booking_id: str,
    data: BookingUpdate,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Update a booking and capture the change."""
    return await _capture(session, BookingMutation.update(booking_id, data))


@router.delete("/{booking_id}", response_model=ChangeResponse)
async def delete_booking(
    booking_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Delete a booking; the captured change carries the last row values."""
    return await _capture(session, BookingMutation.delete(booking_id))


@router.get("/{booking_id}", response_model=EnrichedBookingResponse)
async def get_booking(
    booking_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Current enriched row for a booking."""
    row = await EnrichedRepository(session).get(booking_id)
    if not row:
        raise HTTPException(404, f"No enriched row for booking '{booking_id}'")
    return row


@router.get("/{booking_id}/changes", response_model=ChangeListResponse)
async def list_booking_changes(
    booking_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Captured changes for one booking, in capture order."""
    changes = await ChangeRepository(session).list_for_booking(booking_id)
    next_cursor = changes[-1].seq if changes else 0
    return ChangeListResponse(changes=changes, cursor=0, next_cursor=next_cursor, total=len(changes))
