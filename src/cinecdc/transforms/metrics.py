"""Per-movie KPIs computed from the current enriched rows of one movie."""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from cinecdc.models.booking import BookingStatus
from cinecdc.models.change import ChangeAction

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def _pct(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round(part / whole * 100, 2)


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_movie_insight(movie_id: str, rows: Iterable[Any]) -> dict:
    """Aggregate enriched rows for one movie.

    Counts cover every row. Revenue, status counts and the temporal
    distribution only use valid rows whose latest action is not DELETE.
    new/changed/deleted come from the latest change_action of each row.
    """
    rows = list(rows)
    total = len(rows)
    valid = [r for r in rows if r.is_valid_booking]
    live = [r for r in valid if r.change_action != ChangeAction.DELETE.value]
    active = [r for r in live if r.status == BookingStatus.BOOKED.value]
    cancelled = [r for r in live if r.status == BookingStatus.CANCELLED.value]

    gross = sum((r.total_amount for r in live), ZERO)
    active_dates = [r.booking_date for r in active if r.booking_date is not None]

    return {
        "movie_id": movie_id,
        "total_bookings": total,
        "valid_bookings": len(valid),
        "invalid_bookings": total - len(valid),
        "new_bookings": sum(1 for r in rows if r.change_action == ChangeAction.INSERT.value),
        "changed_bookings": sum(1 for r in rows if r.change_action == ChangeAction.UPDATE.value),
        "deleted_bookings": sum(1 for r in rows if r.change_action == ChangeAction.DELETE.value),
        "active_bookings": len(active),
        "cancelled_bookings": len(cancelled),
        "total_active_revenue": _money(sum((r.active_revenue for r in live), ZERO)),
        "total_lost_revenue": _money(sum((r.lost_revenue for r in live), ZERO)),
        "gross_revenue": _money(gross),
        "avg_revenue": _money(gross / len(live)) if live else _money(ZERO),
        "cancellation_rate": _pct(len(cancelled), total),
        "active_rate": _pct(len(active), total),
        "data_quality_score": _pct(len(valid), total),
        "active_booking_days": len({d.date() for d in active_dates}),
        "active_booking_hours": len({d.hour for d in active_dates}),
        "first_booking_date": min(active_dates) if active_dates else None,
        "last_booking_date": max(active_dates) if active_dates else None,
    }
