"""Gold layer — per-movie KPIs and the per-booking membership memo."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Integer, Float, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from cinecdc.core.clock import utcnow
from cinecdc.core.database import Base


class MovieInsight(Base):
    __tablename__ = "movie_insights"

    movie_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Counts
    total_bookings: Mapped[int] = mapped_column(Integer, default=0)
    valid_bookings: Mapped[int] = mapped_column(Integer, default=0)
    invalid_bookings: Mapped[int] = mapped_column(Integer, default=0)
    new_bookings: Mapped[int] = mapped_column(Integer, default=0)
    changed_bookings: Mapped[int] = mapped_column(Integer, default=0)
    deleted_bookings: Mapped[int] = mapped_column(Integer, default=0)
    active_bookings: Mapped[int] = mapped_column(Integer, default=0)
    cancelled_bookings: Mapped[int] = mapped_column(Integer, default=0)

    # Revenue (valid, non-deleted rows only)
    total_active_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total_lost_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    gross_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    avg_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    # Percentages
    cancellation_rate: Mapped[float] = mapped_column(Float, default=0.0)
    active_rate: Mapped[float] = mapped_column(Float, default=0.0)
    data_quality_score: Mapped[float] = mapped_column(Float, default=0.0)

    # Temporal distribution of active bookings
    active_booking_days: Mapped[int] = mapped_column(Integer, default=0)
    active_booking_hours: Mapped[int] = mapped_column(Integer, default=0)
    first_booking_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_booking_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    refresh_version: Mapped[int] = mapped_column(Integer, default=0)
    refreshed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class InsightMembership(Base):
    """Which movie each booking was last aggregated under."""
    __tablename__ = "insight_memberships"

    booking_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    movie_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    refresh_version: Mapped[int] = mapped_column(Integer, nullable=False)
