"""cinecdc — change-data-capture medallion pipeline for movie bookings."""

__version__ = "0.1.0"

from cinecdc.core.errors import (
    BookingValidationError,
    FatalConfigurationError,
    TransientStageError,
)

__all__ = [
    "BookingValidationError",
    "FatalConfigurationError",
    "TransientStageError",
    "__version__",
]
