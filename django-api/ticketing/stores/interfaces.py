"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every read that feeds
a write goes through ``for_update=True`` inside ``atomic()`` so that the
row stays locked until the transaction ends.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager

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


class TicketingStore(ABC):
    """Interface for events, tiers, orders and promo codes."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open a transaction; row locks taken inside are held until it exits."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def get_tiers(self, event_id: EventId, for_update: bool = False) -> list[TicketTier]:
        """Return the tiers of an event."""
        ...

    @abstractmethod
    def deduct_inventory(self, event_id: EventId, quantities: Mapping[TierId, int]) -> None:
        """Add quantities to ``sold`` for every tier, or to none of them.

        Raises:
            TierNotFoundError: If a tier does not belong to the event.
            InsufficientInventoryError: If a tier has fewer seats remaining.
        """
        ...

    @abstractmethod
    def release_inventory(self, event_id: EventId, quantities: Mapping[TierId, int]) -> None:
        """Return seats to their tiers, never taking ``sold`` below zero."""
        ...

    @abstractmethod
    def add_order(self, order: Order) -> None:
        """Persist a new order.

        Raises:
            DuplicateReferenceError: If the payment reference is taken.
        """
        ...

    @abstractmethod
    def save_order(self, order: Order) -> None:
        """Persist the lifecycle fields of an existing order."""
        ...

    @abstractmethod
    def get_order(self, order_id: OrderId, for_update: bool = False) -> Order | None:
        ...

    @abstractmethod
    def get_order_by_reference(self, tx_ref: str, for_update: bool = False) -> Order | None:
        ...

    @abstractmethod
    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        """Return orders, newest first, optionally filtered by status."""
        ...

    @abstractmethod
    def delete_order(self, order_id: OrderId) -> bool:
        ...

    @abstractmethod
    def get_promo_code(self, code: str, for_update: bool = False) -> PromoCode | None:
        """Return a promo code by case-insensitive exact match."""
        ...

    @abstractmethod
    def list_promo_codes(self) -> list[PromoCode]:
        ...

    @abstractmethod
    def increment_promo_usage(self, code: str) -> bool:
        """Add one use unless the code is missing or at its usage limit."""
        ...

    @abstractmethod
    def decrement_promo_usage(self, code: str) -> bool:
        """Remove one use, never going below zero."""
        ...
