from cinecdc.models.booking import Booking, BookingStatus
from cinecdc.models.change import BookingChange, BookingCdcEvent, ChangeAction
from cinecdc.models.enriched import EnrichedBooking
from cinecdc.models.insight import InsightMembership, MovieInsight
from cinecdc.models.stage import StageRun, StageState, StageStatus

__all__ = [
    "Booking",
    "BookingStatus",
    "BookingChange",
    "BookingCdcEvent",
    "ChangeAction",
    "EnrichedBooking",
    "InsightMembership",
    "MovieInsight",
    "StageRun",
    "StageState",
    "StageStatus",
]
