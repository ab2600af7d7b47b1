from ticketing.domain.models import (
    Customer,
    DiscountType,
    Event,
    EventStatus,
    Order,
    OrderLine,
    OrderRequest,
    OrderStatus,
    PaymentMethod,
    PromoCode,
    TicketLine,
    TicketTier,
)
from ticketing.domain.value_objects import Capacity, EventId, Money, OrderId, Quantity, TierId

__all__ = [
    "Customer",
    "DiscountType",
    "Event",
    "EventStatus",
    "Order",
    "OrderLine",
    "OrderRequest",
    "OrderStatus",
    "PaymentMethod",
    "PromoCode",
    "TicketLine",
    "TicketTier",
    "EventId",
    "TierId",
    "OrderId",
    "Money",
    "Capacity",
    "Quantity",
]
