from django.urls import path

from ticketing.handlers import (
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

urlpatterns = [
    path("orders", OrderListView.as_view(), name="order-list"),
    path("orders/stats", OrderStatsView.as_view(), name="order-stats"),
    path("orders/<str:order_id>", OrderDetailView.as_view(), name="order-detail"),
    path("orders/<str:order_id>/confirm", OrderConfirmView.as_view(), name="order-confirm"),
    path("orders/<str:order_id>/status", OrderStatusView.as_view(), name="order-status"),
    path("payments/callback", PaymentCallbackView.as_view(), name="payment-callback"),
    path("promo-codes/validate", PromoCodeValidateView.as_view(), name="promo-code-validate"),
    path("tickets/verify", TicketVerifyView.as_view(), name="ticket-verify"),
    path("tickets/admit", TicketAdmitView.as_view(), name="ticket-admit"),
    path(
        "events/<str:event_id>/availability",
        EventAvailabilityView.as_view(),
        name="event-availability",
    ),
]
