"""Source booking table and the snapshot columns shared by every downstream table."""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from cinecdc.core.clock import utcnow
from cinecdc.core.database import Base


class BookingStatus(str, enum.Enum):
    BOOKED = "BOOKED"
    CANCELLED = "CANCELLED"


class Booking(Base):
    """The source dataset. Only the capture log mutates it."""
    __tablename__ = "bookings"

    booking_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    movie_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    booking_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=BookingStatus.BOOKED.value)
    ticket_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ticket_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class BookingSnapshotMixin:
    """A full booking row as of one captured mutation."""

    booking_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    movie_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    booking_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ticket_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ticket_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


SNAPSHOT_FIELDS = (
    "booking_id",
    "customer_id",
    "movie_id",
    "booking_date",
    "status",
    "ticket_count",
    "ticket_price",
    "total_amount",
    "created_at",
    "updated_at",
)


def snapshot_of(row) -> dict:
    return {name: getattr(row, name, None) for name in SNAPSHOT_FIELDS}
