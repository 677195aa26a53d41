"""Pure silver and gold transformations."""

from cinecdc.transforms.rules import (
    CategorizationRules,
    PriceCategory,
    SizeCategory,
    StatusCategory,
    check_booking,
    derive_total_amount,
    enrich,
)
from cinecdc.transforms.metrics import compute_movie_insight

__all__ = [
    "CategorizationRules",
    "PriceCategory",
    "SizeCategory",
    "StatusCategory",
    "check_booking",
    "derive_total_amount",
    "enrich",
    "compute_movie_insight",
]
