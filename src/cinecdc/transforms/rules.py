"""Categorization and validity rules applied to each booking snapshot."""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from cinecdc.core.clock import utcnow
from cinecdc.core.errors import BookingValidationError, FatalConfigurationError
from cinecdc.models.booking import BookingStatus

ZERO = Decimal("0")


class StatusCategory(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class SizeCategory(str, Enum):
    SINGLE = "SINGLE"
    GROUP = "GROUP"
    LARGE_GROUP = "LARGE_GROUP"


class PriceCategory(str, Enum):
    BUDGET = "BUDGET"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"


@dataclass(frozen=True)
class CategorizationRules:
    """Thresholds for size and price categories.

    Defaults: 1 ticket is SINGLE, 2-4 GROUP, 5+ LARGE_GROUP; a total below 250
    is BUDGET, 250-500 inclusive STANDARD, above 500 PREMIUM.
    """
    group_min_tickets: int = 2
    large_group_min_tickets: int = 5
    budget_below: Decimal = Decimal("250")
    premium_above: Decimal = Decimal("500")

    @classmethod
    def from_settings(cls, rules) -> "CategorizationRules":
        return cls(
            group_min_tickets=rules.group_min_tickets,
            large_group_min_tickets=rules.large_group_min_tickets,
            budget_below=Decimal(rules.budget_below),
            premium_above=Decimal(rules.premium_above),
        )

    def check(self) -> None:
        """Raise FatalConfigurationError if the thresholds cannot partition the domain."""
        problems = []
        if self.group_min_tickets < 2:
            problems.append(f"group_min_tickets must be >= 2, got {self.group_min_tickets}")
        if self.large_group_min_tickets <= self.group_min_tickets:
            problems.append(
                f"large_group_min_tickets ({self.large_group_min_tickets}) must exceed "
                f"group_min_tickets ({self.group_min_tickets})"
            )
        if self.budget_below < ZERO:
            problems.append(f"budget_below must be >= 0, got {self.budget_below}")
        if self.premium_above < self.budget_below:
            problems.append(
                f"premium_above ({self.premium_above}) must be >= budget_below ({self.budget_below})"
            )
        if problems:
            raise FatalConfigurationError("Malformed categorization rules: " + "; ".join(problems))


DEFAULT_RULES = CategorizationRules()


def derive_total_amount(ticket_count: int | None, ticket_price: Decimal | None) -> Decimal | None:
    if ticket_count is None or ticket_price is None:
        return None
    return Decimal(ticket_count) * Decimal(ticket_price)


def status_category(status: str | None) -> StatusCategory | None:
    if status == BookingStatus.BOOKED.value:
        return StatusCategory.ACTIVE
    if status == BookingStatus.CANCELLED.value:
        return StatusCategory.INACTIVE
    return None


def size_category(ticket_count: int | None, rules: CategorizationRules = DEFAULT_RULES) -> SizeCategory | None:
    if ticket_count is None or ticket_count < 1:
        return None
    if ticket_count >= rules.large_group_min_tickets:
        return SizeCategory.LARGE_GROUP
    if ticket_count >= rules.group_min_tickets:
        return SizeCategory.GROUP
    return SizeCategory.SINGLE


def price_category(total_amount: Decimal | None, rules: CategorizationRules = DEFAULT_RULES) -> PriceCategory | None:
    if total_amount is None:
        return None
    if total_amount < rules.budget_below:
        return PriceCategory.BUDGET
    if total_amount <= rules.premium_above:
        return PriceCategory.STANDARD
    return PriceCategory.PREMIUM


def active_revenue(status: str | None, total_amount: Decimal | None) -> Decimal:
    if status == BookingStatus.BOOKED.value and total_amount is not None:
        return total_amount
    return ZERO


def lost_revenue(status: str | None, total_amount: Decimal | None) -> Decimal:
    if status == BookingStatus.CANCELLED.value and total_amount is not None:
        return total_amount
    return ZERO


def check_booking(snapshot: Any, now: datetime | None = None) -> None:
    """Raise BookingValidationError listing every rule the snapshot breaks."""
    now = now or utcnow()
    reasons = []
    for key in ("booking_id", "customer_id", "movie_id"):
        if getattr(snapshot, key, None) is None:
            reasons.append(f"{key} is missing")

    ticket_count = getattr(snapshot, "ticket_count", None)
    ticket_price = getattr(snapshot, "ticket_price", None)
    if ticket_count is None or ticket_count <= 0:
        reasons.append(f"ticket_count must be positive, got {ticket_count}")
    if ticket_price is None or ticket_price < ZERO:
        reasons.append(f"ticket_price must be non-negative, got {ticket_price}")

    booking_date = getattr(snapshot, "booking_date", None)
    if booking_date is not None and booking_date > now:
        reasons.append(f"booking_date {booking_date.isoformat()} is in the future")

    expected = derive_total_amount(ticket_count, ticket_price)
    total_amount = getattr(snapshot, "total_amount", None)
    if total_amount is None or expected is None or total_amount != expected:
        reasons.append(f"total_amount {total_amount} does not match ticket_count x ticket_price ({expected})")

    if reasons:
        raise BookingValidationError(getattr(snapshot, "booking_id", None), reasons)


def enrich(snapshot: Any, rules: CategorizationRules = DEFAULT_RULES, now: datetime | None = None) -> dict:
    """Derived silver columns for one snapshot. Never raises on bad data."""
    status = getattr(snapshot, "status", None)
    total_amount = getattr(snapshot, "total_amount", None)

    try:
        check_booking(snapshot, now=now)
        is_valid, errors = True, None
    except BookingValidationError as e:
        is_valid, errors = False, e.reasons

    status_cat = status_category(status)
    size_cat = size_category(getattr(snapshot, "ticket_count", None), rules)
    price_cat = price_category(total_amount, rules)
    deleted = getattr(snapshot, "change_action", None) == "DELETE"
    return {
        "booking_status_category": status_cat.value if status_cat else None,
        "booking_size_category": size_cat.value if size_cat else None,
        "price_category": price_cat.value if price_cat else None,
        "active_revenue": ZERO if deleted else active_revenue(status, total_amount),
        "lost_revenue": ZERO if deleted else lost_revenue(status, total_amount),
        "is_valid_booking": is_valid,
        "validation_errors": errors,
    }
