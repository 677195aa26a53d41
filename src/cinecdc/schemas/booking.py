"""Pydantic schemas for booking mutations and captured changes."""

import enum
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from cinecdc.models.booking import BookingStatus


# Range of the INTEGER ticket_count column
INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1


class MutationKind(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class BookingCreate(BaseModel):
    booking_id: str = Field(min_length=1, max_length=64)
    customer_id: str | None = None
    movie_id: str | None = None
    booking_date: datetime | None = None
    status: BookingStatus = BookingStatus.BOOKED
    ticket_count: int | None = Field(default=None, ge=INT32_MIN, le=INT32_MAX)
    ticket_price: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    total_amount: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)


class BookingUpdate(BaseModel):
    customer_id: str | None = None
    movie_id: str | None = None
    booking_date: datetime | None = None
    status: BookingStatus | None = None
    ticket_count: int | None = Field(default=None, ge=INT32_MIN, le=INT32_MAX)
    ticket_price: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    total_amount: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)

    @field_validator("status")
    @classmethod
    def status_not_null(cls, v):
        if v is None:
            raise ValueError("status cannot be null")
        return v


class BookingMutation(BaseModel):
    """A structured mutation record accepted by the capture log."""

    kind: MutationKind
    booking_id: str = Field(min_length=1, max_length=64)
    changes: dict = Field(default_factory=dict)

    @classmethod
    def create(cls, data: BookingCreate) -> "BookingMutation":
        fields = data.model_dump(exclude={"booking_id"}, exclude_unset=True)
        fields.setdefault("status", data.status)
        return cls(kind=MutationKind.CREATE, booking_id=data.booking_id, changes=fields)

    @classmethod
    def update(cls, booking_id: str, data: BookingUpdate) -> "BookingMutation":
        return cls(kind=MutationKind.UPDATE, booking_id=booking_id, changes=data.model_dump(exclude_unset=True))

    @classmethod
    def delete(cls, booking_id: str) -> "BookingMutation":
        return cls(kind=MutationKind.DELETE, booking_id=booking_id)


class ChangeResponse(BaseModel):
    seq: int
    booking_id: str
    action: str
    is_update: bool
    captured_at: datetime
    customer_id: str | None
    movie_id: str | None
    booking_date: datetime | None
    status: str | None
    ticket_count: int | None
    ticket_price: Decimal | None
    total_amount: Decimal | None

    model_config = {"from_attributes": True}


class ChangeListResponse(BaseModel):
    changes: list[ChangeResponse]
    cursor: int
    next_cursor: int
    total: int


class EventResponse(BaseModel):
    id: int
    source_seq: int
    booking_id: str
    change_action: str
    is_update: bool
    change_timestamp: datetime
    customer_id: str | None
    movie_id: str | None
    booking_date: datetime | None
    status: str | None
    ticket_count: int | None
    ticket_price: Decimal | None
    total_amount: Decimal | None

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int


class EnrichedBookingResponse(BaseModel):
    booking_id: str
    customer_id: str | None
    movie_id: str | None
    booking_date: datetime | None
    status: str | None
    ticket_count: int | None
    ticket_price: Decimal | None
    total_amount: Decimal | None
    change_action: str
    is_update: bool
    change_timestamp: datetime
    booking_status_category: str | None
    booking_size_category: str | None
    price_category: str | None
    active_revenue: Decimal
    lost_revenue: Decimal
    is_valid_booking: bool
    validation_errors: list[str] | None
    refreshed_at: datetime

    model_config = {"from_attributes": True}


class EnrichedBookingListResponse(BaseModel):
    bookings: list[EnrichedBookingResponse]
    total: int
