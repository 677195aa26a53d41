"""Capture log and CDC event store models."""

import enum
from datetime import datetime

from sqlalchemy import String, DateTime, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from cinecdc.core.clock import utcnow
from cinecdc.core.database import Base
from cinecdc.models.booking import BookingSnapshotMixin


class ChangeAction(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class BookingChange(BookingSnapshotMixin, Base):
    """One captured mutation. seq is the log position."""
    __tablename__ = "booking_changes"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    is_update: Mapped[bool] = mapped_column(Boolean, default=False)
    captured_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


class BookingCdcEvent(BookingSnapshotMixin, Base):
    """Append-only bronze table; one row per drained change."""
    __tablename__ = "booking_cdc_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_seq: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    change_action: Mapped[str] = mapped_column(String(10), nullable=False)
    is_update: Mapped[bool] = mapped_column(Boolean, default=False)
    change_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    appended_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
