"""Order service - owns the order state machine.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return typed results instead of raising domain errors

Inventory is consumed only when an order is confirmed; pending orders hold
no seats.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal

from django.utils import timezone

from ticketing import notifications
from ticketing.conf import get_setting
from ticketing.domain import (
    EventId,
    Money,
    Order,
    OrderId,
    OrderLine,
    OrderRequest,
    OrderStatus,
)
from ticketing.domain.errors import (
    DuplicateReferenceError,
    EventNotFoundError,
    InvalidPromoCodeError,
    InvalidRequestError,
    InvalidTransitionError,
    OrderNotFoundError,
    TierNotFoundError,
)
from ticketing.domain.results import OrderResult, OrderStats, TransitionResult
from ticketing.domain.scan import normalize_reference
from ticketing.services.inventory import InventoryLedger, merge_lines
from ticketing.services.promo_codes import PromoCodeEngine
from ticketing.services.references import generate_tx_ref
from ticketing.stores.interfaces import TicketingStore

logger = logging.getLogger(__name__)


def _parse_order_id(order_id: str | OrderId) -> OrderId | None:
    if isinstance(order_id, OrderId):
        return order_id
    try:
        return OrderId.from_string(order_id)
    except (TypeError, ValueError):
        return None


class OrderService:
    """Creates orders and moves them through their lifecycle."""

    def __init__(
        self,
        store: TicketingStore,
        clock: Callable[[], datetime] = timezone.now,
        ledger: InventoryLedger | None = None,
        promo_codes: PromoCodeEngine | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._ledger = ledger or InventoryLedger(store, clock)
        self._promo_codes = promo_codes or PromoCodeEngine(store, clock)

    # Creation

    def create_order(self, request: OrderRequest) -> OrderResult:
        """Create a pending order after checking availability.

        Prices come from the tiers and the discount from re-validating the
        promo code; nothing the buyer computed is trusted.
        """
        lines = list(request.lines)
        availability = self._ledger.check_availability(request.event_id, lines)
        if not availability.available:
            logger.info("Order rejected for event %s: %s", request.event_id, availability.reason)
            return OrderResult.failed(availability.error)

        customer = request.customer
        if not customer.name.strip() or not customer.email.strip():
            return OrderResult.failed(InvalidRequestError("Customer name and email are required"))

        event_id = EventId.from_string(request.event_id)
        event = self._store.get_event(event_id)
        if event is None:
            return OrderResult.failed(EventNotFoundError())
        tiers = {str(tier.id): tier for tier in self._store.get_tiers(event_id)}
        requested = merge_lines(lines)
        missing = next((tier_id for tier_id in requested if tier_id not in tiers), None)
        if missing is not None:
            return OrderResult.failed(TierNotFoundError(missing))
        order_lines = tuple(
            OrderLine(
                tier_id=tiers[tier_id].id,
                tier_name=tiers[tier_id].name,
                quantity=quantity,
                unit_price=tiers[tier_id].price,
            )
            for tier_id, quantity in requested.items()
        )
        subtotal = Money.zero()
        for line in order_lines:
            subtotal = subtotal + line.line_total

        discount = Money.zero()
        promo_code = None
        if request.promo_code and request.promo_code.strip():
            validation = self._promo_codes.validate(request.promo_code, subtotal, request.event_id)
            if not validation.valid:
                return OrderResult.failed(InvalidPromoCodeError(validation.message))
            discount = validation.discount
            promo_code = validation.code.code

        service_fee = Money(Decimal(str(get_setting("SERVICE_FEE"))))
        tx_ref = normalize_reference(request.tx_ref) if request.tx_ref else generate_tx_ref()
        order = Order(
            id=OrderId.generate(),
            tx_ref=tx_ref,
            event_id=event_id,
            event_title=event.title,
            event_date=event.starts_on,
            event_location=event.location,
            lines=order_lines,
            subtotal=subtotal,
            service_fee=service_fee,
            discount=discount,
            total=subtotal.minus(discount) + service_fee,
            customer=customer,
            payment_method=request.payment_method,
            status=OrderStatus.PENDING,
            created_at=self._clock(),
            promo_code=promo_code,
        )
        try:
            self._store.add_order(order)
        except DuplicateReferenceError as exc:
            logger.warning("Duplicate payment reference %s", tx_ref)
            return OrderResult.failed(exc)

        logger.info(
            "Created order %s (%s) for event %s: %s ticket(s), total %s",
            order.id,
            order.tx_ref,
            order.event_id,
            order.ticket_count,
            order.total,
        )
        return OrderResult.created(order)

    # Confirmation

    def confirm(self, order_id: str | OrderId, transaction_id: str | None = None) -> TransitionResult:
        """Confirm a pending order, consuming its seats and promo usage.

        Confirming an already confirmed order returns it unchanged.
        """
        parsed = _parse_order_id(order_id)
        if parsed is None:
            return TransitionResult(error=OrderNotFoundError())
        with self._store.atomic():
            order = self._store.get_order(parsed, for_update=True)
            result, changed = self._confirm_locked(order, transaction_id)
        if changed:
            notifications.order_confirmed.send(sender=self.__class__, order=result.order)
        return result

    def confirm_by_reference(self, tx_ref: str, transaction_id: str | None = None) -> TransitionResult:
        """Confirm the order behind a payment reference (payment callbacks)."""
        with self._store.atomic():
            order = self._store.get_order_by_reference(normalize_reference(tx_ref), for_update=True)
            result, changed = self._confirm_locked(order, transaction_id)
        if changed:
            notifications.order_confirmed.send(sender=self.__class__, order=result.order)
        return result

    def confirm_order(self, order_id: str | OrderId, transaction_id: str | None = None) -> Order | None:
        return self.confirm(order_id, transaction_id).order

    def confirm_order_by_reference(self, tx_ref: str, transaction_id: str | None = None) -> Order | None:
        return self.confirm_by_reference(tx_ref, transaction_id).order

    def _confirm_locked(
        self, order: Order | None, transaction_id: str | None
    ) -> tuple[TransitionResult, bool]:
        if order is None:
            return TransitionResult(error=OrderNotFoundError()), False
        if order.status == OrderStatus.CONFIRMED:
            return TransitionResult(order=order), False
        if not order.status.can_transition_to(OrderStatus.CONFIRMED):
            logger.warning("Refused to confirm order %s in status %s", order.id, order.status.value)
            return (
                TransitionResult(
                    error=InvalidTransitionError(order.status.value, OrderStatus.CONFIRMED.value)
                ),
                False,
            )

        deducted = self._ledger.deduct(str(order.event_id), order.ticket_lines())
        if not deducted.available:
            logger.warning("Order %s cannot be confirmed: %s", order.id, deducted.reason)
            return TransitionResult(error=deducted.error), False
        promo_counted = bool(order.promo_code) and self._promo_codes.mark_used(order.promo_code)

        confirmed = order.with_status(
            OrderStatus.CONFIRMED,
            confirmed_at=self._clock(),
            transaction_id=transaction_id or order.transaction_id,
            promo_counted=promo_counted,
        )
        self._store.save_order(confirmed)
        logger.info("Confirmed order %s (%s)", confirmed.id, confirmed.tx_ref)
        return TransitionResult(order=confirmed), True

    # Other transitions

    def update_status(
        self,
        order_id: str | OrderId,
        status: OrderStatus | str,
        transaction_id: str | None = None,
        staff: str | None = None,
    ) -> TransitionResult:
        """Move an order to ``status`` if the state machine allows it.

        ``staff`` is recorded as the redeemer when the order becomes used.
        """
        try:
            target = OrderStatus(status)
        except ValueError:
            return TransitionResult(error=InvalidRequestError(f"Unknown order status: {status}"))
        if target == OrderStatus.CONFIRMED:
            return self.confirm(order_id, transaction_id)

        parsed = _parse_order_id(order_id)
        if parsed is None:
            return TransitionResult(error=OrderNotFoundError())
        with self._store.atomic():
            order = self._store.get_order(parsed, for_update=True)
            result = self._transition_locked(order, target, transaction_id, staff)
        if result.success and target == OrderStatus.CANCELLED:
            notifications.order_cancelled.send(sender=self.__class__, order=result.order)
        return result

    def update_order_status(
        self,
        order_id: str | OrderId,
        status: OrderStatus | str,
        transaction_id: str | None = None,
        staff: str | None = None,
    ) -> Order | None:
        return self.update_status(order_id, status, transaction_id, staff).order

    def cancel_unpaid(self, tx_ref: str, transaction_id: str | None = None) -> TransitionResult:
        """Cancel the order behind a failed or abandoned payment.

        Only pending orders are cancelled. A late failure notice for an
        order that was already paid is refused.
        """
        with self._store.atomic():
            order = self._store.get_order_by_reference(normalize_reference(tx_ref), for_update=True)
            if order is not None and order.status != OrderStatus.PENDING:
                logger.warning(
                    "Ignored payment failure for order %s in status %s",
                    order.id,
                    order.status.value,
                )
                result = TransitionResult(
                    error=InvalidTransitionError(order.status.value, OrderStatus.CANCELLED.value)
                )
            else:
                result = self._transition_locked(order, OrderStatus.CANCELLED, transaction_id, None)
        if result.success:
            notifications.order_cancelled.send(sender=self.__class__, order=result.order)
        return result

    def _transition_locked(
        self,
        order: Order | None,
        target: OrderStatus,
        transaction_id: str | None,
        staff: str | None,
    ) -> TransitionResult:
        if order is None:
            return TransitionResult(error=OrderNotFoundError())
        if not order.status.can_transition_to(target):
            logger.warning(
                "Rejected transition of order %s from %s to %s",
                order.id,
                order.status.value,
                target.value,
            )
            return TransitionResult(error=InvalidTransitionError(order.status.value, target.value))

        changes = {}
        if transaction_id:
            changes["transaction_id"] = transaction_id
        if target == OrderStatus.USED:
            changes["used_at"] = self._clock()
            changes["redeemed_by"] = staff
        if target == OrderStatus.CANCELLED and order.status == OrderStatus.CONFIRMED:
            self._ledger.release(str(order.event_id), order.ticket_lines())
            if order.promo_counted:
                self._promo_codes.release(order.promo_code)
                changes["promo_counted"] = False

        updated = order.with_status(target, **changes)
        self._store.save_order(updated)
        logger.info("Order %s moved from %s to %s", order.id, order.status.value, target.value)
        return TransitionResult(order=updated)

    def cancel_stale_orders(self, older_than: timedelta) -> list[Order]:
        """Cancel pending orders created more than ``older_than`` ago."""
        cancelled = []
        for order in self.find_stale_orders(older_than):
            result = self.update_status(order.id, OrderStatus.CANCELLED)
            if result.success:
                cancelled.append(result.order)
        if cancelled:
            logger.info("Cancelled %s stale pending order(s)", len(cancelled))
        return cancelled

    def find_stale_orders(self, older_than: timedelta) -> list[Order]:
        cutoff = self._clock() - older_than
        return [
            order
            for order in self._store.list_orders(OrderStatus.PENDING)
            if order.created_at < cutoff
        ]

    # Queries and admin

    def get_order(self, order_id: str | OrderId) -> Order | None:
        parsed = _parse_order_id(order_id)
        return self._store.get_order(parsed) if parsed else None

    def get_order_by_reference(self, tx_ref: str) -> Order | None:
        return self._store.get_order_by_reference(normalize_reference(tx_ref))

    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        return self._store.list_orders(status)

    def delete_order(self, order_id: str | OrderId) -> bool:
        """Remove an order permanently (admin only). Seats are not returned."""
        parsed = _parse_order_id(order_id)
        if parsed is None:
            return False
        deleted = self._store.delete_order(parsed)
        if deleted:
            logger.info("Deleted order %s", parsed)
        return deleted

    def get_order_stats(self) -> OrderStats:
        orders = self._store.list_orders()
        counts = {status: 0 for status in OrderStatus}
        revenue = Decimal("0")
        for order in orders:
            counts[order.status] += 1
            if order.status in (OrderStatus.CONFIRMED, OrderStatus.USED):
                revenue += order.total.amount
        return OrderStats(
            total=len(orders),
            pending=counts[OrderStatus.PENDING],
            confirmed=counts[OrderStatus.CONFIRMED],
            cancelled=counts[OrderStatus.CANCELLED],
            used=counts[OrderStatus.USED],
            revenue=revenue,
        )
