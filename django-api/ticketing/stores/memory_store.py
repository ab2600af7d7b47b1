"""In-process implementation of the TicketingStore.

Rows are locked per key (event, order, promo code) for the lifetime of the
enclosing ``atomic()`` block, mirroring ``select_for_update`` on the ORM
store. Writes are applied only after every check has passed, so no
rollback is needed.
"""

import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import replace

from ticketing.domain import (
    Event,
    EventId,
    Order,
    OrderId,
    OrderStatus,
    PromoCode,
    TicketTier,
    TierId,
)
from ticketing.domain.errors import (
    DuplicateReferenceError,
    InsufficientInventoryError,
    TierNotFoundError,
)
from ticketing.stores.interfaces import TicketingStore


class InMemoryTicketingStore(TicketingStore):
    """Thread-safe store keeping everything in dictionaries."""

    def __init__(self) -> None:
        self._events: dict[EventId, Event] = {}
        self._tiers: dict[EventId, dict[TierId, TicketTier]] = {}
        self._orders: dict[OrderId, Order] = {}
        self._references: dict[str, OrderId] = {}
        self._promo_codes: dict[str, PromoCode] = {}
        self._data_lock = threading.RLock()
        self._row_locks: dict[tuple[str, str], threading.Lock] = {}
        self._local = threading.local()

    # Seeding, used by admin tooling and tests.

    def add_event(self, event: Event, tiers: Iterable[TicketTier] = ()) -> None:
        with self._data_lock:
            self._events[event.id] = event
            self._tiers.setdefault(event.id, {})
            for tier in tiers:
                self._tiers[event.id][tier.id] = tier

    def add_promo_code(self, promo: PromoCode) -> None:
        with self._data_lock:
            self._promo_codes[promo.code.upper()] = promo

    # Transactions

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if getattr(self._local, "held", None) is not None:
            yield
            return
        self._local.held = []
        try:
            yield
        finally:
            for lock in reversed(self._local.held):
                lock.release()
            self._local.held = None

    def _lock(self, kind: str, key: str) -> None:
        held = getattr(self._local, "held", None)
        if held is None:
            return
        with self._data_lock:
            lock = self._row_locks.setdefault((kind, key), threading.Lock())
        if lock in held:
            return
        lock.acquire()
        held.append(lock)

    # Events and tiers

    def get_event(self, event_id: EventId) -> Event | None:
        with self._data_lock:
            return self._events.get(event_id)

    def get_tiers(self, event_id: EventId, for_update: bool = False) -> list[TicketTier]:
        if for_update:
            self._lock("event", str(event_id))
        with self._data_lock:
            return list(self._tiers.get(event_id, {}).values())

    def deduct_inventory(self, event_id: EventId, quantities: Mapping[TierId, int]) -> None:
        self._lock("event", str(event_id))
        with self._data_lock:
            tiers = self._tiers.get(event_id, {})
            for tier_id, quantity in quantities.items():
                tier = tiers.get(tier_id)
                if tier is None:
                    raise TierNotFoundError(str(tier_id))
                if tier.remaining < quantity:
                    raise InsufficientInventoryError(tier.name, tier.remaining)
            for tier_id, quantity in quantities.items():
                tier = tiers[tier_id]
                tiers[tier_id] = replace(tier, sold=tier.sold + quantity)

    def release_inventory(self, event_id: EventId, quantities: Mapping[TierId, int]) -> None:
        self._lock("event", str(event_id))
        with self._data_lock:
            tiers = self._tiers.get(event_id, {})
            for tier_id, quantity in quantities.items():
                tier = tiers.get(tier_id)
                if tier is not None:
                    tiers[tier_id] = replace(tier, sold=max(0, tier.sold - quantity))

    # Orders

    def add_order(self, order: Order) -> None:
        with self._data_lock:
            if order.tx_ref in self._references:
                raise DuplicateReferenceError(order.tx_ref)
            self._orders[order.id] = order
            self._references[order.tx_ref] = order.id

    def save_order(self, order: Order) -> None:
        with self._data_lock:
            self._orders[order.id] = order

    def get_order(self, order_id: OrderId, for_update: bool = False) -> Order | None:
        if for_update:
            self._lock("order", str(order_id))
        with self._data_lock:
            return self._orders.get(order_id)

    def get_order_by_reference(self, tx_ref: str, for_update: bool = False) -> Order | None:
        with self._data_lock:
            order_id = self._references.get(tx_ref)
        if order_id is None:
            return None
        return self.get_order(order_id, for_update=for_update)

    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        with self._data_lock:
            orders = list(self._orders.values())
        if status is not None:
            orders = [order for order in orders if order.status == status]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def delete_order(self, order_id: OrderId) -> bool:
        with self._data_lock:
            order = self._orders.pop(order_id, None)
            if order is None:
                return False
            self._references.pop(order.tx_ref, None)
            return True

    # Promo codes

    def get_promo_code(self, code: str, for_update: bool = False) -> PromoCode | None:
        key = code.strip().upper()
        if for_update:
            self._lock("promo", key)
        with self._data_lock:
            return self._promo_codes.get(key)

    def list_promo_codes(self) -> list[PromoCode]:
        with self._data_lock:
            return list(self._promo_codes.values())

    def increment_promo_usage(self, code: str) -> bool:
        key = code.strip().upper()
        self._lock("promo", key)
        with self._data_lock:
            promo = self._promo_codes.get(key)
            if promo is None or promo.is_exhausted:
                return False
            self._promo_codes[key] = replace(promo, used_count=promo.used_count + 1)
            return True

    def decrement_promo_usage(self, code: str) -> bool:
        key = code.strip().upper()
        self._lock("promo", key)
        with self._data_lock:
            promo = self._promo_codes.get(key)
            if promo is None or promo.used_count == 0:
                return False
            self._promo_codes[key] = replace(promo, used_count=promo.used_count - 1)
            return True
