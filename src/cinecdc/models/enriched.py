"""Silver layer — current enriched state per booking."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Integer, Boolean, Numeric, JSON
from sqlalchemy.orm import Mapped, mapped_column

from cinecdc.core.clock import utcnow
from cinecdc.core.database import Base
from cinecdc.models.booking import BookingSnapshotMixin


class EnrichedBooking(BookingSnapshotMixin, Base):
    """Latest event per booking_id plus derived categories.

    (change_timestamp, source_seq) is the memo version: a row is only
    recomputed when a newer event for the same booking arrives.
    """
    __tablename__ = "enriched_bookings"

    booking_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    change_action: Mapped[str] = mapped_column(String(10), nullable=False)
    is_update: Mapped[bool] = mapped_column(Boolean, default=False)
    change_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    source_event_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    booking_status_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    booking_size_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    price_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    active_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    lost_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    is_valid_booking: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    validation_errors: Mapped[list | None] = mapped_column(JSON, nullable=True)

    refresh_version: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    refreshed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
