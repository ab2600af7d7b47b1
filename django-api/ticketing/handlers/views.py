"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from django.core.cache import cache
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing.cache import availability_key
from ticketing.conf import get_setting
from ticketing.domain import EventId
from ticketing.domain.errors import DomainError, ErrorCode, StorageUnavailableError
from ticketing.handlers.serializers import (
    ConfirmOrderSerializer,
    OrderRequestSerializer,
    OrderSerializer,
    OrderStatsSerializer,
    OrderStatusSerializer,
    PaymentCallbackSerializer,
    PromoValidationRequestSerializer,
    ScanSerializer,
    TicketTierAvailabilitySerializer,
)
from ticketing.services import OrderService, PromoCodeEngine, RedemptionVerifier
from ticketing.stores import get_store

ERROR_STATUS = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TIER_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_PASSED: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorCode.INSUFFICIENT_INVENTORY: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_REFERENCE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.STORAGE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(error: DomainError) -> Response:
    return Response(
        {"code": error.code.value, "message": error.message},
        status=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
    )


def staff_identity(request: Request) -> str | None:
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user.get_username()
    return None


class TicketingView(APIView):
    """Base view: storage failures become 503 responses."""

    def handle_exception(self, exc):
        if isinstance(exc, StorageUnavailableError):
            return error_response(exc)
        return super().handle_exception(exc)

    @property
    def orders(self) -> OrderService:
        return OrderService(get_store())


class OrderListView(TicketingView):
    """Handler for POST /api/orders"""

    def post(self, request: Request) -> Response:
        serializer = OrderRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.orders.create_order(serializer.to_order_request())
        if not result.success:
            return error_response(result.error)
        return Response(OrderSerializer(result.order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(TicketingView):
    """Handler for GET/DELETE /api/orders/{order_id}"""

    def get(self, request: Request, order_id: str) -> Response:
        order = self.orders.get_order(order_id)
        if order is None:
            return Response(
                {"code": ErrorCode.ORDER_NOT_FOUND.value, "message": "Order not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderSerializer(order).data)

    def delete(self, request: Request, order_id: str) -> Response:
        if not self.orders.delete_order(order_id):
            return Response(
                {"code": ErrorCode.ORDER_NOT_FOUND.value, "message": "Order not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)


class OrderConfirmView(TicketingView):
    """Handler for POST /api/orders/{order_id}/confirm"""

    def post(self, request: Request, order_id: str) -> Response:
        serializer = ConfirmOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.orders.confirm(order_id, serializer.validated_data.get("transaction_id") or None)
        if not result.success:
            return error_response(result.error)
        return Response(OrderSerializer(result.order).data)


class OrderStatusView(TicketingView):
    """Handler for POST /api/orders/{order_id}/status"""

    def post(self, request: Request, order_id: str) -> Response:
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.orders.update_status(
            order_id,
            serializer.validated_data["status"],
            transaction_id=serializer.validated_data.get("transaction_id") or None,
            staff=staff_identity(request),
        )
        if not result.success:
            return error_response(result.error)
        return Response(OrderSerializer(result.order).data)


class OrderStatsView(TicketingView):
    """Handler for GET /api/orders/stats"""

    def get(self, request: Request) -> Response:
        return Response(OrderStatsSerializer(self.orders.get_order_stats()).data)


class PaymentCallbackView(TicketingView):
    """Handler for POST /api/payments/callback

    Successful payments confirm the order; failed or cancelled payments
    cancel it while it is still pending.
    """

    def post(self, request: Request) -> Response:
        serializer = PaymentCallbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if data["status"] == "successful":
            result = self.orders.confirm_by_reference(data["tx_ref"], data["transaction_id"])
        else:
            result = self.orders.cancel_unpaid(data["tx_ref"], data["transaction_id"])
        if not result.success:
            return error_response(result.error)
        return Response(OrderSerializer(result.order).data)


class PromoCodeValidateView(TicketingView):
    """Handler for POST /api/promo-codes/validate"""

    def post(self, request: Request) -> Response:
        serializer = PromoValidationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        validation = PromoCodeEngine(get_store()).validate(
            data["code"], data["subtotal"], data.get("event_id") or None
        )
        return Response(
            {
                "valid": validation.valid,
                "discount": str(validation.discount.amount),
                "message": validation.message,
            }
        )


class TicketVerifyView(TicketingView):
    """Handler for POST /api/tickets/verify"""

    def post(self, request: Request) -> Response:
        serializer = ScanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = RedemptionVerifier(get_store()).verify_ticket(
            serializer.validated_data["scanned"],
            serializer.validated_data.get("event_id") or None,
        )
        return Response(_verification_payload(result))


class TicketAdmitView(TicketingView):
    """Handler for POST /api/tickets/admit

    Always re-reads the ticket; a classification shown earlier on the
    scanner is never trusted.
    """

    def post(self, request: Request) -> Response:
        serializer = ScanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = RedemptionVerifier(get_store()).admit(
            serializer.validated_data["scanned"],
            serializer.validated_data.get("event_id") or None,
            staff=staff_identity(request),
        )
        return Response(
            _verification_payload(result),
            status=status.HTTP_200_OK if result.admitted else status.HTTP_409_CONFLICT,
        )


class EventAvailabilityView(TicketingView):
    """Handler for GET /api/events/{event_id}/availability"""

    def get(self, request: Request, event_id: str) -> Response:
        try:
            parsed = EventId.from_string(event_id)
        except ValueError:
            return Response(
                {"code": ErrorCode.INVALID_REQUEST.value, "message": "Invalid event ID format"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        key = availability_key(parsed)
        payload = cache.get(key)
        if payload is None:
            store = get_store()
            if store.get_event(parsed) is None:
                return Response(
                    {"code": ErrorCode.EVENT_NOT_FOUND.value, "message": "Event not found"},
                    status=status.HTTP_404_NOT_FOUND,
                )
            tiers = store.get_tiers(parsed)
            payload = {
                "event_id": str(parsed),
                "tiers": list(TicketTierAvailabilitySerializer(tiers, many=True).data),
            }
            cache.set(key, payload, get_setting("AVAILABILITY_CACHE_TIMEOUT"))
        return Response(payload)


def _verification_payload(result) -> dict:
    return {
        "status": result.status.value,
        "message": result.message,
        "admitted": result.admitted,
        "order": OrderSerializer(result.order).data if result.order else None,
    }
