"""Serializers for request parsing and for rendering domain models."""

from rest_framework import serializers

from ticketing.domain import Customer, OrderRequest, OrderStatus, PaymentMethod, TicketLine

# Printed ticket envelopes are well under this.
MAX_SCAN_LENGTH = 2048


class TicketLineInputSerializer(serializers.Serializer):
    tier_id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=0)


class CustomerInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=50)


class OrderRequestSerializer(serializers.Serializer):
    """Validates input for POST /api/orders."""

    event_id = serializers.CharField()
    tickets = TicketLineInputSerializer(many=True, allow_empty=False)
    customer = CustomerInputSerializer()
    payment_method = serializers.ChoiceField(choices=[method.value for method in PaymentMethod])
    tx_ref = serializers.CharField(max_length=64, required=False, allow_blank=True)
    promo_code = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def to_order_request(self) -> OrderRequest:
        data = self.validated_data
        return OrderRequest(
            event_id=data["event_id"],
            lines=tuple(
                TicketLine(tier_id=line["tier_id"], quantity=line["quantity"])
                for line in data["tickets"]
            ),
            customer=Customer(**data["customer"]),
            payment_method=PaymentMethod(data["payment_method"]),
            tx_ref=data.get("tx_ref") or None,
            promo_code=data.get("promo_code") or None,
        )


class ConfirmOrderSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[status.value for status in OrderStatus])
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True)


class PaymentCallbackSerializer(serializers.Serializer):
    tx_ref = serializers.CharField(max_length=64)
    transaction_id = serializers.CharField(max_length=100)
    status = serializers.ChoiceField(choices=["successful", "failed", "cancelled"])


class PromoValidationRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    event_id = serializers.CharField(required=False, allow_blank=True)


class ScanSerializer(serializers.Serializer):
    scanned = serializers.CharField(max_length=MAX_SCAN_LENGTH, trim_whitespace=True)
    event_id = serializers.CharField(required=False, allow_blank=True)


class OrderLineSerializer(serializers.Serializer):
    """Serializer for OrderLine domain model."""

    tier_id = serializers.CharField()
    tier_name = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(source="unit_price.amount", max_digits=12, decimal_places=2)


class OrderSerializer(serializers.Serializer):
    """Serializer for Order domain model."""

    id = serializers.CharField()
    tx_ref = serializers.CharField()
    event_id = serializers.CharField()
    event_title = serializers.CharField()
    event_date = serializers.DateField()
    event_location = serializers.CharField()
    tickets = OrderLineSerializer(source="lines", many=True)
    subtotal = serializers.DecimalField(source="subtotal.amount", max_digits=12, decimal_places=2)
    service_fee = serializers.DecimalField(source="service_fee.amount", max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(source="discount.amount", max_digits=12, decimal_places=2)
    total = serializers.DecimalField(source="total.amount", max_digits=12, decimal_places=2)
    promo_code = serializers.CharField(allow_null=True)
    customer_name = serializers.CharField(source="customer.name")
    customer_email = serializers.CharField(source="customer.email")
    customer_phone = serializers.CharField(source="customer.phone")
    payment_method = serializers.CharField(source="payment_method.value")
    status = serializers.CharField(source="status.value")
    transaction_id = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()
    confirmed_at = serializers.DateTimeField(allow_null=True)
    used_at = serializers.DateTimeField(allow_null=True)


class TicketTierAvailabilitySerializer(serializers.Serializer):
    """Serializer for TicketTier domain model."""

    id = serializers.CharField()
    name = serializers.CharField()
    price = serializers.DecimalField(source="price.amount", max_digits=12, decimal_places=2)
    capacity = serializers.IntegerField(source="capacity.value")
    sold = serializers.IntegerField()
    remaining = serializers.IntegerField()
    max_per_person = serializers.IntegerField()


class OrderStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    pending = serializers.IntegerField()
    confirmed = serializers.IntegerField()
    cancelled = serializers.IntegerField()
    used = serializers.IntegerField()
    revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
