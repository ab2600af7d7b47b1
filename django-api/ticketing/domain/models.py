"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from ticketing.domain.value_objects import (
    Capacity,
    EventId,
    Money,
    OrderId,
    TierId,
)


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class OrderStatus(str, Enum):
    """Order lifecycle states.

    pending -> confirmed -> used, with cancelled reachable from pending
    and confirmed. used and cancelled are terminal.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    USED = "used"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.USED, OrderStatus.CANCELLED)

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.USED, OrderStatus.CANCELLED}),
    OrderStatus.USED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class PaymentMethod(str, Enum):
    MOMO = "momo"
    CARD = "card"
    BANK = "bank"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    title: str
    starts_on: date
    location: str
    status: EventStatus = EventStatus.SCHEDULED


@dataclass(frozen=True)
class TicketTier:
    """Domain representation of a TicketTier.

    ``capacity`` is the total number of seats allocated to the tier and
    ``sold`` the number consumed by confirmed orders.
    """

    id: TierId
    event_id: EventId
    name: str
    price: Money
    capacity: Capacity
    sold: int
    max_per_person: int

    def __post_init__(self) -> None:
        if not 0 <= self.sold <= self.capacity.value:
            raise ValueError("Tier sold count must be between zero and capacity")

    @property
    def remaining(self) -> int:
        return self.capacity.value - self.sold


@dataclass(frozen=True)
class TicketLine:
    """A requested quantity of one tier."""

    tier_id: str
    quantity: int


@dataclass(frozen=True)
class OrderLine:
    """Snapshot of a purchased tier, independent of later tier edits."""

    tier_id: TierId
    tier_name: str
    quantity: int
    unit_price: Money

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity

    def as_ticket_line(self) -> TicketLine:
        return TicketLine(tier_id=str(self.tier_id), quantity=self.quantity)


@dataclass(frozen=True)
class Customer:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class Order:
    """Domain representation of an Order."""

    id: OrderId
    tx_ref: str
    event_id: EventId
    event_title: str
    event_date: date
    event_location: str
    lines: tuple[OrderLine, ...]
    subtotal: Money
    service_fee: Money
    discount: Money
    total: Money
    customer: Customer
    payment_method: PaymentMethod
    status: OrderStatus
    created_at: datetime
    promo_code: str | None = None
    transaction_id: str | None = None
    confirmed_at: datetime | None = None
    used_at: datetime | None = None
    redeemed_by: str | None = None
    promo_counted: bool = False

    @property
    def ticket_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def ticket_lines(self) -> list[TicketLine]:
        return [line.as_ticket_line() for line in self.lines]

    def with_status(self, status: OrderStatus, **changes) -> "Order":
        return replace(self, status=status, **changes)


@dataclass(frozen=True)
class PromoCode:
    """Domain representation of a discount code.

    ``max_uses`` of zero means unlimited.
    """

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    min_purchase: Money
    max_uses: int
    used_count: int
    valid_from: datetime | None
    valid_until: datetime | None
    is_active: bool = True
    event_id: EventId | None = None

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses > 0 and self.used_count >= self.max_uses


@dataclass(frozen=True)
class OrderRequest:
    """Buyer input for creating an order."""

    event_id: str
    lines: tuple[TicketLine, ...]
    customer: Customer
    payment_method: PaymentMethod
    tx_ref: str | None = None
    promo_code: str | None = None
