"""Error kinds raised across the capture log, the stages and the API."""

from __future__ import annotations


class CineCDCError(Exception):
    """Base class for every cinecdc error."""


class BookingValidationError(CineCDCError):
    """A booking snapshot failed one or more validity rules.

    Raised per row; callers record the reasons and keep the row.
    """

    def __init__(self, booking_id: str | None, reasons: list[str]):
        self.booking_id = booking_id
        self.reasons = reasons
        super().__init__(f"Booking {booking_id!r} is invalid: {'; '.join(reasons)}")


class BookingNotFoundError(CineCDCError):
    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking '{booking_id}' not found")


class BookingConflictError(CineCDCError):
    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking '{booking_id}' already exists")


class StageError(CineCDCError):
    """A stage run failed."""


class TransientStageError(StageError):
    """Retried on the next scheduled tick; the input stays replayable from the cursor."""


class FatalConfigurationError(StageError):
    """Halts the affected stage until it is resumed. Committed output is untouched."""


class UnknownStageError(CineCDCError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Stage '{name}' not found")
