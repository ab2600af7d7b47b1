from ticketing.handlers.views import (
    EventAvailabilityView,
    OrderConfirmView,
    OrderDetailView,
    OrderListView,
    OrderStatsView,
    OrderStatusView,
    PaymentCallbackView,
    PromoCodeValidateView,
    TicketAdmitView,
    TicketVerifyView,
)

__all__ = [
    "EventAvailabilityView",
    "OrderConfirmView",
    "OrderDetailView",
    "OrderListView",
    "OrderStatsView",
    "OrderStatusView",
    "PaymentCallbackView",
    "PromoCodeValidateView",
    "TicketAdmitView",
    "TicketVerifyView",
]
