"""Promo code engine: validates codes and prices discounts.

Validation is read-only. Usage is only counted by ``mark_used``, which the
order service calls inside the confirmation transaction.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from ticketing.conf import get_setting
from ticketing.domain import DiscountType, Money, PromoCode
from ticketing.domain.results import PromoStats, PromoValidation
from ticketing.stores.interfaces import TicketingStore

logger = logging.getLogger(__name__)


def _plain_number(value: Decimal) -> Decimal | int:
    return int(value) if value == value.to_integral_value() else value


def format_amount(value: Decimal) -> str:
    """``5000`` -> ``5,000``; keeps fractional parts when present."""
    return f"{_plain_number(value):,}"


def compute_discount(promo: PromoCode, subtotal: Money) -> Money:
    """Discount for ``subtotal``; never more than the subtotal itself."""
    if promo.discount_type == DiscountType.PERCENTAGE:
        raw = subtotal.amount * promo.discount_value / Decimal(100)
        discount = raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    else:
        discount = promo.discount_value
    return Money(min(max(discount, Decimal("0")), subtotal.amount))


class PromoCodeEngine:
    def __init__(
        self, store: TicketingStore, clock: Callable[[], datetime] = timezone.now
    ) -> None:
        self._store = store
        self._clock = clock

    def validate(
        self, code: str, subtotal: Money | Decimal | int, event_id: str | None = None
    ) -> PromoValidation:
        """Validate ``code`` for a purchase; the first failing check wins.

        Order of checks: existence, active flag, start of the validity
        window, end of the window, usage limit, minimum purchase, event
        scope.
        """
        subtotal = subtotal if isinstance(subtotal, Money) else Money(Decimal(subtotal))
        promo = self._store.get_promo_code(code) if code and code.strip() else None
        if promo is None:
            return PromoValidation.rejected("Invalid promo code")
        return self.validate_promo(promo, subtotal, event_id)

    def validate_promo(
        self, promo: PromoCode, subtotal: Money, event_id: str | None
    ) -> PromoValidation:
        currency = get_setting("CURRENCY")
        now = self._clock()

        if not promo.is_active:
            return PromoValidation.rejected("This promo code is no longer active")
        if promo.valid_from is not None and now < promo.valid_from:
            return PromoValidation.rejected("This promo code is not yet valid")
        if promo.valid_until is not None and now > promo.valid_until:
            return PromoValidation.rejected("This promo code has expired")
        if promo.is_exhausted:
            return PromoValidation.rejected("This promo code has reached its usage limit")
        if subtotal.amount < promo.min_purchase.amount:
            return PromoValidation.rejected(
                f"Minimum purchase of {format_amount(promo.min_purchase.amount)} {currency} required"
            )
        if promo.event_id is not None and str(promo.event_id) != str(event_id or "").strip().lower():
            return PromoValidation.rejected("This promo code is not valid for this event")

        discount = compute_discount(promo, subtotal)
        if promo.discount_type == DiscountType.PERCENTAGE:
            label = f"{_plain_number(promo.discount_value)}% off"
        else:
            label = f"{format_amount(promo.discount_value)} {currency} off"
        return PromoValidation(
            valid=True, discount=discount, message=f"{label} applied!", code=promo
        )

    def mark_used(self, code: str) -> bool:
        """Count one use of ``code``.

        Callers must invoke this exactly once per confirmed order that
        applied the code. Returns False when the code is unknown or its
        usage limit is already reached.
        """
        counted = self._store.increment_promo_usage(code)
        if not counted:
            logger.warning("Promo code %s usage not counted (unknown or exhausted)", code)
        return counted

    def release(self, code: str) -> bool:
        """Give back one use of ``code`` after a confirmed order is cancelled."""
        return self._store.decrement_promo_usage(code)

    def get_promo_stats(self) -> PromoStats:
        now = self._clock()
        codes = self._store.list_promo_codes()
        active = [
            promo
            for promo in codes
            if promo.is_active and (promo.valid_until is None or promo.valid_until >= now)
        ]
        return PromoStats(
            total=len(codes),
            active=len(active),
            total_uses=sum(promo.used_count for promo in codes),
        )
