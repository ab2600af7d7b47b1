"""Tests for the order service.

Run with: pytest tests/test_services.py -v
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from tests.factories import make_event, make_promo, make_request, make_tier, tier_in
from ticketing import notifications
from ticketing.domain import Customer, Money, OrderStatus
from ticketing.domain.errors import ErrorCode
from ticketing.domain.results import Availability
from ticketing.services import OrderService


@pytest.fixture
def placed_order(order_service, event, regular_tier):
    return order_service.create_order(make_request(event, (regular_tier, 2))).order


class StaleLedger:
    """Ledger that approved the request before the catalog changed."""

    def check_availability(self, event_id, lines):
        return Availability.ok()


class TestCreateOrder:
    def test_creates_pending_order_with_computed_totals(self, store, order_service, event, regular_tier):
        """Given 2 x 5,000 and a 500 fee, subtotal is 10,000 and total 10,500."""
        result = order_service.create_order(make_request(event, (regular_tier, 2)))

        assert result.success
        order = result.order
        assert order.status == OrderStatus.PENDING
        assert order.subtotal == Money(Decimal("10000"))
        assert order.service_fee == Money(Decimal("500"))
        assert order.discount == Money.zero()
        assert order.total == Money(Decimal("10500"))
        assert order.ticket_count == 2
        assert order.event_title == event.title
        assert order.lines[0].tier_name == "Regular"
        assert order.tx_ref.startswith("SOP-")
        assert store.get_order(order.id) == order

    def test_pending_order_holds_no_seats(self, store, placed_order, regular_tier):
        assert tier_in(store, regular_tier).sold == 0

    def test_unavailable_request_creates_nothing(self, store, order_service, event, vip_tier):
        result = order_service.create_order(make_request(event, (vip_tier, 6)))

        assert not result.success
        assert result.order is None
        assert result.error.code == ErrorCode.INSUFFICIENT_INVENTORY
        assert store.list_orders() == []

    def test_missing_customer_details(self, order_service, event, regular_tier):
        request = make_request(
            event, (regular_tier, 1), customer=Customer(name=" ", email="", phone="")
        )
        result = order_service.create_order(request)
        assert result.error.code == ErrorCode.INVALID_REQUEST

    def test_promo_discount_is_applied_before_fee(self, store, order_service, event, regular_tier):
        store.add_promo_code(make_promo())

        order = order_service.create_order(
            make_request(event, (regular_tier, 4), promo_code="sopab12")
        ).order

        assert order.subtotal == Money(Decimal("20000"))
        assert order.discount == Money(Decimal("4000"))
        assert order.total == Money(Decimal("16500"))
        assert order.promo_code == "SOPAB12"

    def test_discount_cannot_push_total_below_fee(self, store, order_service, event, regular_tier):
        store.add_promo_code(
            make_promo(discount_value=Decimal("100"), min_purchase=Money.zero())
        )
        order = order_service.create_order(
            make_request(event, (regular_tier, 1), promo_code="SOPAB12")
        ).order
        assert order.total == Money(Decimal("500"))

    def test_invalid_promo_aborts_creation(self, store, order_service, event, regular_tier):
        result = order_service.create_order(
            make_request(event, (regular_tier, 1), promo_code="NOPE")
        )
        assert result.error.code == ErrorCode.INVALID_PROMO_CODE
        assert result.error.message == "Invalid promo code"
        assert store.list_orders() == []

    def test_creation_does_not_count_promo_usage(self, store, order_service, event, regular_tier):
        store.add_promo_code(make_promo())
        order_service.create_order(make_request(event, (regular_tier, 1), promo_code="SOPAB12"))
        assert store.get_promo_code("SOPAB12").used_count == 0

    def test_client_reference_is_normalized(self, order_service, event, regular_tier):
        order = order_service.create_order(
            make_request(event, (regular_tier, 1), tx_ref=" sop-abc-1234 ")
        ).order
        assert order.tx_ref == "SOP-ABC-1234"

    def test_duplicate_reference_is_rejected(self, order_service, event, regular_tier):
        order_service.create_order(make_request(event, (regular_tier, 1), tx_ref="SOP-X-0001"))
        result = order_service.create_order(
            make_request(event, (regular_tier, 1), tx_ref="SOP-X-0001")
        )
        assert result.error.code == ErrorCode.DUPLICATE_REFERENCE

    def test_event_removed_after_availability_check(self, store, clock):
        """An event deleted between the check and pricing fails cleanly."""
        gone = make_event()
        service = OrderService(store, clock, ledger=StaleLedger())

        result = service.create_order(make_request(gone, (make_tier(gone), 1)))

        assert result.error.code == ErrorCode.EVENT_NOT_FOUND
        assert store.list_orders() == []

    def test_tier_removed_after_availability_check(self, store, clock, event, regular_tier):
        service = OrderService(store, clock, ledger=StaleLedger())

        result = service.create_order(make_request(event, (regular_tier, 1), (make_tier(event), 1)))

        assert result.error.code == ErrorCode.TIER_NOT_FOUND


class TestConfirm:
    def test_confirm_consumes_seats(self, store, order_service, placed_order, regular_tier):
        """Confirming the 2-ticket order raises sold by 2."""
        result = order_service.confirm(placed_order.id, transaction_id="FLW-123")

        assert result.success
        assert result.order.status == OrderStatus.CONFIRMED
        assert result.order.transaction_id == "FLW-123"
        assert result.order.confirmed_at is not None
        assert tier_in(store, regular_tier).sold == 2

    def test_confirm_is_idempotent(self, store, order_service, placed_order, regular_tier):
        first = order_service.confirm(placed_order.id)
        second = order_service.confirm(str(placed_order.id))

        assert second.order == first.order
        assert tier_in(store, regular_tier).sold == 2

    def test_confirm_by_reference(self, order_service, placed_order):
        order = order_service.confirm_order_by_reference(placed_order.tx_ref.lower())
        assert order.status == OrderStatus.CONFIRMED

    def test_cancelled_order_cannot_be_confirmed(self, order_service, placed_order):
        """Cancel a pending order, then confirming it returns nothing."""
        cancelled = order_service.update_order_status(placed_order.id, OrderStatus.CANCELLED)
        assert cancelled.status == OrderStatus.CANCELLED

        assert order_service.confirm_order(placed_order.id) is None
        result = order_service.confirm(placed_order.id)
        assert result.error.code == ErrorCode.INVALID_TRANSITION
        assert order_service.get_order(placed_order.id).status == OrderStatus.CANCELLED

    def test_confirm_fails_when_seats_ran_out(
        self, store, order_service, event, vip_tier
    ):
        first = order_service.create_order(make_request(event, (vip_tier, 3))).order
        second = order_service.create_order(make_request(event, (vip_tier, 3))).order

        assert order_service.confirm(first.id).success
        result = order_service.confirm(second.id)

        assert result.error.code == ErrorCode.INSUFFICIENT_INVENTORY
        assert order_service.get_order(second.id).status == OrderStatus.PENDING
        assert tier_in(store, vip_tier).sold == 3

    def test_confirm_counts_promo_usage_once(self, store, order_service, event, regular_tier):
        store.add_promo_code(make_promo(max_uses=5))
        order = order_service.create_order(
            make_request(event, (regular_tier, 1), promo_code="SOPAB12")
        ).order

        order_service.confirm(order.id)
        order_service.confirm(order.id)

        assert store.get_promo_code("SOPAB12").used_count == 1

    def test_unknown_order(self, order_service):
        assert order_service.confirm("not-a-uuid").error.code == ErrorCode.ORDER_NOT_FOUND
        assert order_service.confirm_order_by_reference("SOP-NOPE") is None

    def test_confirmation_sends_signal_once(self, order_service, placed_order):
        received = []

        def receiver(sender, order, **kwargs):
            received.append(order)

        notifications.order_confirmed.connect(receiver)
        try:
            order_service.confirm(placed_order.id)
            order_service.confirm(placed_order.id)
        finally:
            notifications.order_confirmed.disconnect(receiver)

        assert [order.id for order in received] == [placed_order.id]


class TestUpdateStatus:
    def test_confirmed_order_can_be_used(self, order_service, placed_order):
        order_service.confirm(placed_order.id)
        order = order_service.update_order_status(placed_order.id, "used", staff="gate-1")
        assert order.status == OrderStatus.USED
        assert order.redeemed_by == "gate-1"
        assert order.used_at is not None

    def test_pending_order_cannot_be_used(self, order_service, placed_order):
        result = order_service.update_status(placed_order.id, OrderStatus.USED)
        assert result.error.code == ErrorCode.INVALID_TRANSITION

    @pytest.mark.parametrize("target", ["pending", "confirmed", "cancelled"])
    def test_used_is_terminal(self, order_service, placed_order, target):
        order_service.confirm(placed_order.id)
        order_service.update_status(placed_order.id, OrderStatus.USED)
        result = order_service.update_status(placed_order.id, target)
        assert not result.success
        assert order_service.get_order(placed_order.id).status == OrderStatus.USED

    def test_unknown_status(self, order_service, placed_order):
        result = order_service.update_status(placed_order.id, "refunded")
        assert result.error.code == ErrorCode.INVALID_REQUEST

    def test_confirmed_status_routes_through_confirmation(
        self, store, order_service, placed_order, regular_tier
    ):
        order = order_service.update_order_status(placed_order.id, "confirmed", "FLW-9")
        assert order.status == OrderStatus.CONFIRMED
        assert order.transaction_id == "FLW-9"
        assert tier_in(store, regular_tier).sold == 2

    def test_cancelling_confirmed_order_releases_seats_and_promo(
        self, store, order_service, event, regular_tier
    ):
        store.add_promo_code(make_promo())
        order = order_service.create_order(
            make_request(event, (regular_tier, 3), promo_code="SOPAB12")
        ).order
        order_service.confirm(order.id)

        order_service.update_status(order.id, OrderStatus.CANCELLED)

        assert tier_in(store, regular_tier).sold == 0
        assert store.get_promo_code("SOPAB12").used_count == 0

    def test_cancelling_pending_order_leaves_inventory(self, store, order_service, placed_order, regular_tier):
        order_service.update_status(placed_order.id, OrderStatus.CANCELLED)
        assert tier_in(store, regular_tier).sold == 0

    def test_cancelling_order_whose_promo_use_was_not_counted(
        self, store, order_service, event, regular_tier
    ):
        """Two orders share a single-use code; only the first use is counted."""
        store.add_promo_code(make_promo(max_uses=1))
        first, second = (
            order_service.create_order(
                make_request(event, (regular_tier, 1), promo_code="SOPAB12")
            ).order
            for _ in range(2)
        )

        assert order_service.confirm(first.id).order.promo_counted
        late = order_service.confirm(second.id)
        assert late.success
        assert not late.order.promo_counted

        order_service.update_status(second.id, OrderStatus.CANCELLED)

        assert store.get_promo_code("SOPAB12").used_count == 1
        order_service.update_status(first.id, OrderStatus.CANCELLED)
        assert store.get_promo_code("SOPAB12").used_count == 0


class TestCancelUnpaid:
    def test_pending_order_is_cancelled(self, order_service, placed_order):
        result = order_service.cancel_unpaid(placed_order.tx_ref.lower(), "FLW-FAIL")

        assert result.success
        assert result.order.status == OrderStatus.CANCELLED
        assert result.order.transaction_id == "FLW-FAIL"

    def test_paid_order_is_kept(self, store, order_service, placed_order, regular_tier):
        """A failure notice arriving after the payment went through changes nothing."""
        order_service.confirm(placed_order.id, transaction_id="FLW-OK")

        result = order_service.cancel_unpaid(placed_order.tx_ref, "FLW-FAIL")

        assert result.error.code == ErrorCode.INVALID_TRANSITION
        order = order_service.get_order(placed_order.id)
        assert order.status == OrderStatus.CONFIRMED
        assert order.transaction_id == "FLW-OK"
        assert tier_in(store, regular_tier).sold == 2

    def test_unknown_reference(self, order_service):
        assert order_service.cancel_unpaid("SOP-NOPE").error.code == ErrorCode.ORDER_NOT_FOUND


class TestQueries:
    def test_stats_and_revenue(self, order_service, event, regular_tier):
        orders = [
            order_service.create_order(make_request(event, (regular_tier, 1))).order
            for _ in range(4)
        ]
        order_service.confirm(orders[0].id)
        order_service.confirm(orders[1].id)
        order_service.update_status(orders[1].id, OrderStatus.USED)
        order_service.update_status(orders[2].id, OrderStatus.CANCELLED)

        stats = order_service.get_order_stats()

        assert (stats.total, stats.pending, stats.confirmed, stats.cancelled, stats.used) == (
            4, 1, 1, 1, 1,
        )
        assert stats.revenue == Decimal("11000")

    def test_list_orders_newest_first(self, order_service, clock, event, regular_tier):
        first = order_service.create_order(make_request(event, (regular_tier, 1))).order
        clock.now = clock.now + timedelta(minutes=5)
        second = order_service.create_order(make_request(event, (regular_tier, 1))).order
        order_service.confirm(second.id)

        assert [o.id for o in order_service.list_orders()] == [second.id, first.id]
        assert [o.id for o in order_service.list_orders(OrderStatus.PENDING)] == [first.id]

    def test_get_order_by_reference(self, order_service, placed_order):
        assert order_service.get_order_by_reference(placed_order.tx_ref.lower()) == placed_order

    def test_delete_order(self, order_service, placed_order):
        assert order_service.delete_order(placed_order.id)
        assert order_service.get_order(placed_order.id) is None
        assert not order_service.delete_order(placed_order.id)
        assert not order_service.delete_order("garbage")


class TestStaleOrders:
    def test_only_old_pending_orders_are_cancelled(self, order_service, clock, event, regular_tier):
        old = order_service.create_order(make_request(event, (regular_tier, 1))).order
        old_confirmed = order_service.create_order(make_request(event, (regular_tier, 1))).order
        order_service.confirm(old_confirmed.id)
        clock.now = clock.now + timedelta(hours=50)
        fresh = order_service.create_order(make_request(event, (regular_tier, 1))).order

        cancelled = order_service.cancel_stale_orders(timedelta(hours=48))

        assert [order.id for order in cancelled] == [old.id]
        assert order_service.get_order(old.id).status == OrderStatus.CANCELLED
        assert order_service.get_order(old_confirmed.id).status == OrderStatus.CONFIRMED
        assert order_service.get_order(fresh.id).status == OrderStatus.PENDING
