"""Tests for categorization and validity rules."""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from cinecdc.core.clock import utcnow
from cinecdc.core.errors import BookingValidationError, FatalConfigurationError
from cinecdc.transforms.rules import (
    CategorizationRules, PriceCategory, SizeCategory, StatusCategory,
    active_revenue, check_booking, derive_total_amount, enrich, lost_revenue,
    price_category, size_category, status_category,
)


def snapshot(**overrides):
    fields = {
        "booking_id": "B1",
        "customer_id": "C1",
        "movie_id": "M1",
        "booking_date": utcnow() - timedelta(hours=1),
        "status": "BOOKED",
        "ticket_count": 2,
        "ticket_price": Decimal("150.00"),
        "total_amount": Decimal("300.00"),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestCategories:
    @pytest.mark.parametrize("count,expected", [
        (1, SizeCategory.SINGLE),
        (2, SizeCategory.GROUP),
        (4, SizeCategory.GROUP),
        (5, SizeCategory.LARGE_GROUP),
        (40, SizeCategory.LARGE_GROUP),
    ])
    def test_size_boundaries(self, count, expected):
        assert size_category(count) == expected

    @pytest.mark.parametrize("count", [None, 0, -1])
    def test_size_undefined_for_non_positive(self, count):
        assert size_category(count) is None

    @pytest.mark.parametrize("total,expected", [
        (Decimal("0"), PriceCategory.BUDGET),
        (Decimal("249.99"), PriceCategory.BUDGET),
        (Decimal("250"), PriceCategory.STANDARD),
        (Decimal("500"), PriceCategory.STANDARD),
        (Decimal("500.01"), PriceCategory.PREMIUM),
    ])
    def test_price_boundaries(self, total, expected):
        assert price_category(total) == expected

    def test_price_undefined_without_total(self):
        assert price_category(None) is None

    def test_status(self):
        assert status_category("BOOKED") == StatusCategory.ACTIVE
        assert status_category("CANCELLED") == StatusCategory.INACTIVE
        assert status_category(None) is None

    def test_custom_thresholds(self):
        rules = CategorizationRules(group_min_tickets=3, large_group_min_tickets=10,
                                    budget_below=Decimal("100"), premium_above=Decimal("1000"))
        assert size_category(2, rules) == SizeCategory.SINGLE
        assert size_category(10, rules) == SizeCategory.LARGE_GROUP
        assert price_category(Decimal("100"), rules) == PriceCategory.STANDARD


class TestRevenue:
    def test_booked_is_active(self):
        assert active_revenue("BOOKED", Decimal("300")) == Decimal("300")
        assert lost_revenue("BOOKED", Decimal("300")) == Decimal("0")

    def test_cancelled_is_lost(self):
        assert active_revenue("CANCELLED", Decimal("300")) == Decimal("0")
        assert lost_revenue("CANCELLED", Decimal("300")) == Decimal("300")

    def test_missing_total_is_zero(self):
        assert active_revenue("BOOKED", None) == Decimal("0")

    def test_derive_total(self):
        assert derive_total_amount(3, Decimal("12.50")) == Decimal("37.50")
        assert derive_total_amount(None, Decimal("12.50")) is None


class TestValidity:
    def test_valid_snapshot(self):
        check_booking(snapshot())

    def test_collects_every_reason(self):
        with pytest.raises(BookingValidationError) as exc:
            check_booking(snapshot(customer_id=None, ticket_count=-1, ticket_price=Decimal("-5")))
        reasons = exc.value.reasons
        assert any("customer_id" in r for r in reasons)
        assert any("ticket_count" in r for r in reasons)
        assert any("ticket_price" in r for r in reasons)
        assert exc.value.booking_id == "B1"

    def test_future_booking_date(self):
        with pytest.raises(BookingValidationError, match="future"):
            check_booking(snapshot(booking_date=utcnow() + timedelta(days=2)))

    def test_total_mismatch(self):
        with pytest.raises(BookingValidationError, match="total_amount"):
            check_booking(snapshot(total_amount=Decimal("299.00")))

    def test_zero_price_allowed(self):
        check_booking(snapshot(ticket_price=Decimal("0"), total_amount=Decimal("0")))

    def test_enrich_flags_instead_of_raising(self):
        derived = enrich(snapshot(ticket_count=-1, total_amount=Decimal("-150.00")))
        assert derived["is_valid_booking"] is False
        assert derived["validation_errors"]
        assert derived["booking_size_category"] is None

    def test_enrich_deleted_row_has_no_revenue(self):
        derived = enrich(snapshot(change_action="DELETE"))
        assert derived["booking_status_category"] == "ACTIVE"
        assert derived["active_revenue"] == Decimal("0")
        assert derived["lost_revenue"] == Decimal("0")

        derived = enrich(snapshot(change_action="DELETE", status="CANCELLED"))
        assert derived["lost_revenue"] == Decimal("0")

    def test_future_date_is_relative_to_now(self):
        booked_for = utcnow() + timedelta(days=2)
        assert enrich(snapshot(booking_date=booked_for))["is_valid_booking"] is False
        later = enrich(snapshot(booking_date=booked_for), now=booked_for + timedelta(days=1))
        assert later["is_valid_booking"] is True

    def test_enrich_valid_row(self):
        derived = enrich(snapshot())
        assert derived == {
            "booking_status_category": "ACTIVE",
            "booking_size_category": "GROUP",
            "price_category": "STANDARD",
            "active_revenue": Decimal("300.00"),
            "lost_revenue": Decimal("0"),
            "is_valid_booking": True,
            "validation_errors": None,
        }


class TestRulesCheck:
    def test_defaults_pass(self):
        CategorizationRules().check()

    @pytest.mark.parametrize("kwargs", [
        {"group_min_tickets": 1},
        {"large_group_min_tickets": 2},
        {"budget_below": Decimal("-1")},
        {"premium_above": Decimal("100")},
    ])
    def test_malformed_rules_are_fatal(self, kwargs):
        with pytest.raises(FatalConfigurationError):
            CategorizationRules(**kwargs).check()
