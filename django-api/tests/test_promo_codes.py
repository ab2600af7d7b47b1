"""Tests for promo code validation and usage counting."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tests.factories import make_event, make_promo
from ticketing.domain import DiscountType, Money
from ticketing.services.promo_codes import compute_discount, format_amount


class TestValidate:
    def test_percentage_code_applies_discount(self, store, promo_engine):
        """Given SOPAB12 at 20% with minimum 5,000, a 20,000 subtotal gets 4,000 off."""
        store.add_promo_code(make_promo())

        result = promo_engine.validate("SOPAB12", Money(Decimal("20000")))

        assert result.valid
        assert result.discount == Money(Decimal("4000"))
        assert result.message == "20% off applied!"
        assert result.code.code == "SOPAB12"

    def test_lookup_is_case_insensitive(self, store, promo_engine):
        store.add_promo_code(make_promo())
        assert promo_engine.validate("  sopab12 ", 20000).valid

    def test_fixed_code_message_and_discount(self, store, promo_engine):
        store.add_promo_code(
            make_promo(discount_type=DiscountType.FIXED, discount_value=Decimal("5000"))
        )
        result = promo_engine.validate("SOPAB12", Money(Decimal("20000")))
        assert result.discount == Money(Decimal("5000"))
        assert result.message == "5,000 RWF off applied!"

    @pytest.mark.parametrize("code", ["", "   ", "NOPE"])
    def test_unknown_code(self, promo_engine, code):
        result = promo_engine.validate(code, 20000)
        assert not result.valid
        assert result.discount == Money.zero()
        assert result.message == "Invalid promo code"

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"is_active": False}, "This promo code is no longer active"),
            (
                {"valid_from": datetime(2026, 6, 1, tzinfo=timezone.utc)},
                "This promo code is not yet valid",
            ),
            (
                {"valid_until": datetime(2026, 2, 1, tzinfo=timezone.utc)},
                "This promo code has expired",
            ),
            ({"max_uses": 3, "used_count": 3}, "This promo code has reached its usage limit"),
            ({"min_purchase": Money(Decimal("50000"))}, "Minimum purchase of 50,000 RWF required"),
        ],
    )
    def test_rejections(self, store, promo_engine, overrides, message):
        store.add_promo_code(make_promo(**overrides))
        result = promo_engine.validate("SOPAB12", Money(Decimal("20000")))
        assert not result.valid
        assert result.discount == Money.zero()
        assert result.message == message

    def test_first_failing_check_wins(self, store, promo_engine):
        """An inactive, expired code reports inactivity."""
        store.add_promo_code(
            make_promo(is_active=False, valid_until=datetime(2026, 2, 1, tzinfo=timezone.utc))
        )
        assert promo_engine.validate("SOPAB12", 20000).message == "This promo code is no longer active"

    def test_event_scoped_code(self, store, promo_engine):
        event = make_event()
        store.add_promo_code(make_promo(event_id=event.id))

        assert promo_engine.validate("SOPAB12", 20000, str(event.id)).valid
        result = promo_engine.validate("SOPAB12", 20000, str(make_event().id))
        assert result.message == "This promo code is not valid for this event"

    def test_validity_window_boundaries_are_inclusive(self, store, promo_engine, clock):
        store.add_promo_code(make_promo(valid_from=clock.now, valid_until=clock.now))
        assert promo_engine.validate("SOPAB12", 20000).valid

        clock.now = clock.now + timedelta(seconds=1)
        assert not promo_engine.validate("SOPAB12", 20000).valid

    def test_validate_does_not_count_usage(self, store, promo_engine):
        store.add_promo_code(make_promo(max_uses=1))
        for _ in range(3):
            assert promo_engine.validate("SOPAB12", 20000).valid
        assert store.get_promo_code("SOPAB12").used_count == 0


class TestComputeDiscount:
    def test_fixed_discount_never_exceeds_subtotal(self):
        promo = make_promo(discount_type=DiscountType.FIXED, discount_value=Decimal("5000"))
        assert compute_discount(promo, Money(Decimal("3000"))) == Money(Decimal("3000"))

    def test_percentage_rounds_half_up_to_whole_units(self):
        promo = make_promo(discount_value=Decimal("15"))
        # 15% of 4,999 is 749.85
        assert compute_discount(promo, Money(Decimal("4999"))) == Money(Decimal("750"))

    def test_full_percentage_is_whole_subtotal(self):
        promo = make_promo(discount_value=Decimal("100"))
        assert compute_discount(promo, Money(Decimal("8000"))) == Money(Decimal("8000"))


class TestUsage:
    def test_mark_used_respects_the_cap(self, store, promo_engine):
        store.add_promo_code(make_promo(max_uses=2))

        assert promo_engine.mark_used("SOPAB12")
        assert promo_engine.mark_used("sopab12")
        assert not promo_engine.mark_used("SOPAB12")
        assert store.get_promo_code("SOPAB12").used_count == 2

    def test_unlimited_code_keeps_counting(self, store, promo_engine):
        store.add_promo_code(make_promo(max_uses=0))
        for _ in range(5):
            assert promo_engine.mark_used("SOPAB12")
        assert store.get_promo_code("SOPAB12").used_count == 5

    def test_mark_used_unknown_code(self, promo_engine):
        assert not promo_engine.mark_used("NOPE")

    def test_release_gives_back_one_use(self, store, promo_engine):
        store.add_promo_code(make_promo(max_uses=1, used_count=1))
        assert promo_engine.release("SOPAB12")
        assert store.get_promo_code("SOPAB12").used_count == 0
        assert not promo_engine.release("SOPAB12")

    def test_promo_stats(self, store, promo_engine):
        store.add_promo_code(make_promo(used_count=4))
        store.add_promo_code(
            make_promo(
                code="SOPOLD1", used_count=2, valid_until=datetime(2026, 1, 31, tzinfo=timezone.utc)
            )
        )
        store.add_promo_code(make_promo(code="SOPOFF1", is_active=False))

        stats = promo_engine.get_promo_stats()

        assert (stats.total, stats.active, stats.total_uses) == (3, 1, 6)


def test_format_amount():
    assert format_amount(Decimal("5000")) == "5,000"
    assert format_amount(Decimal("5000.00")) == "5,000"
    assert format_amount(Decimal("12.5")) == "12.5"
