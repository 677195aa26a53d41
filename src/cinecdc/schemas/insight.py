"""Pydantic schemas for movie insights."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class MovieInsightResponse(BaseModel):
    movie_id: str
    total_bookings: int
    valid_bookings: int
    invalid_bookings: int
    new_bookings: int
    changed_bookings: int
    deleted_bookings: int
    active_bookings: int
    cancelled_bookings: int
    total_active_revenue: Decimal
    total_lost_revenue: Decimal
    gross_revenue: Decimal
    avg_revenue: Decimal
    cancellation_rate: float
    active_rate: float
    data_quality_score: float
    active_booking_days: int
    active_booking_hours: int
    first_booking_date: datetime | None
    last_booking_date: datetime | None
    refreshed_at: datetime

    model_config = {"from_attributes": True}


class MovieInsightListResponse(BaseModel):
    insights: list[MovieInsightResponse]
    total: int
