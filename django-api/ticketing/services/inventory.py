"""Inventory ledger: the single source of truth for remaining seats."""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from django.utils import timezone

from ticketing.domain import EventId, EventStatus, Quantity, TicketLine, TicketTier, TierId
from ticketing.domain.errors import (
    DomainError,
    EmptyOrderError,
    EventCancelledError,
    EventNotFoundError,
    EventPassedError,
    InsufficientInventoryError,
    InvalidQuantityError,
    MaxPerPersonExceededError,
    TierNotFoundError,
)
from ticketing.domain.results import Availability
from ticketing.stores.interfaces import TicketingStore

logger = logging.getLogger(__name__)


def merge_lines(lines: Iterable[TicketLine]) -> dict[str, int]:
    """Sum quantities per tier id, dropping zero lines.

    Raises:
        ValueError: If a quantity is not a non-negative whole number.
    """
    requested: dict[str, int] = {}
    for line in lines:
        quantity = Quantity(line.quantity).value
        if quantity == 0:
            continue
        key = str(line.tier_id).strip().lower()
        requested[key] = requested.get(key, 0) + quantity
    return requested


class InventoryLedger:
    """Checks and consumes tier capacity for an event.

    Checks are all-or-nothing: one failing line fails the whole request.
    """

    def __init__(
        self, store: TicketingStore, clock: Callable[[], datetime] = timezone.now
    ) -> None:
        self._store = store
        self._clock = clock

    def check_availability(self, event_id: str, lines: Iterable[TicketLine]) -> Availability:
        """Return whether every requested line can be sold right now."""
        return self._check(event_id, lines, for_update=False)

    def deduct(self, event_id: str, lines: Iterable[TicketLine]) -> Availability:
        """Consume seats for every line.

        Must run inside ``store.atomic()``; the event's tiers stay locked
        from the check until the write.
        """
        lines = list(lines)
        result = self._check(event_id, lines, for_update=True, enforce_schedule=False)
        if not result.available:
            return result
        quantities = self._quantities(lines)
        try:
            self._store.deduct_inventory(EventId.from_string(event_id), quantities)
        except (InsufficientInventoryError, TierNotFoundError) as exc:
            return Availability.rejected(exc)
        return Availability.ok()

    def release(self, event_id: str, lines: Iterable[TicketLine]) -> None:
        """Return seats of a cancelled confirmed order."""
        quantities = self._quantities(lines)
        self._store.release_inventory(EventId.from_string(event_id), quantities)
        logger.info("Released %s seat(s) for event %s", sum(quantities.values()), event_id)

    def _check(
        self,
        event_id: str,
        lines: Iterable[TicketLine],
        for_update: bool,
        enforce_schedule: bool = True,
    ) -> Availability:
        try:
            parsed_event_id = EventId.from_string(event_id)
        except ValueError:
            return Availability.rejected(EventNotFoundError())

        event = self._store.get_event(parsed_event_id)
        if event is None:
            return Availability.rejected(EventNotFoundError())
        if enforce_schedule:
            error = self._schedule_error(event.starts_on, event.status)
            if error is not None:
                return Availability.rejected(error)

        try:
            requested = merge_lines(lines)
        except ValueError:
            return Availability.rejected(InvalidQuantityError())
        if not requested:
            return Availability.rejected(EmptyOrderError())

        tiers = {str(tier.id): tier for tier in self._store.get_tiers(parsed_event_id, for_update)}
        for tier_id, quantity in requested.items():
            tier = tiers.get(tier_id)
            if tier is None:
                return Availability.rejected(TierNotFoundError(tier_id), tier_id=tier_id)
            rejection = self._check_tier(tier, quantity)
            if rejection is not None:
                return rejection
        return Availability.ok()

    def _schedule_error(self, starts_on, status: EventStatus) -> DomainError | None:
        today = timezone.localdate(self._clock())
        if starts_on < today:
            return EventPassedError()
        if status == EventStatus.CANCELLED:
            return EventCancelledError()
        return None

    @staticmethod
    def _check_tier(tier: TicketTier, quantity: int) -> Availability | None:
        if tier.remaining < quantity:
            return Availability.rejected(
                InsufficientInventoryError(tier.name, tier.remaining),
                tier_id=str(tier.id),
                remaining=tier.remaining,
            )
        if quantity > tier.max_per_person:
            return Availability.rejected(
                MaxPerPersonExceededError(tier.name, tier.max_per_person),
                tier_id=str(tier.id),
                remaining=tier.remaining,
            )
        return None

    def _quantities(self, lines: Iterable[TicketLine]) -> dict[TierId, int]:
        return {
            TierId.from_string(tier_id): quantity
            for tier_id, quantity in merge_lines(lines).items()
        }
