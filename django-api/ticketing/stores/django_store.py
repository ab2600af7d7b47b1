"""Django ORM implementation of the TicketingStore.

Row locks are taken with ``select_for_update`` and counters are moved with
``F()`` expressions, so concurrent workers serialize on the rows they touch.
Database failures surface as StorageUnavailableError.
"""

import functools
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from decimal import Decimal

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Q

from ticketing import models
from ticketing.domain import (
    Capacity,
    Customer,
    DiscountType,
    Event,
    EventId,
    EventStatus,
    Money,
    Order,
    OrderId,
    OrderLine,
    OrderStatus,
    PaymentMethod,
    PromoCode,
    TicketTier,
    TierId,
)
from ticketing.domain.errors import (
    DuplicateReferenceError,
    InsufficientInventoryError,
    StorageUnavailableError,
    TierNotFoundError,
)
from ticketing.stores.interfaces import TicketingStore


def _storage_guard(method):
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except IntegrityError:
            raise
        except DatabaseError as exc:
            raise StorageUnavailableError() from exc

    return wrapper


def _to_event(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        title=row.title,
        starts_on=row.date,
        location=row.location,
        status=EventStatus(row.status),
    )


def _to_tier(row: models.TicketTier) -> TicketTier:
    return TicketTier(
        id=TierId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        price=Money(row.price),
        capacity=Capacity(row.capacity),
        sold=row.sold,
        max_per_person=row.max_per_person,
    )


def _to_order(row: models.Order) -> Order:
    lines = tuple(
        OrderLine(
            tier_id=TierId(line.tier_id),
            tier_name=line.tier_name,
            quantity=line.quantity,
            unit_price=Money(line.unit_price),
        )
        for line in row.lines.all()
    )
    return Order(
        id=OrderId(row.id),
        tx_ref=row.tx_ref,
        event_id=EventId(row.event_id),
        event_title=row.event_title,
        event_date=row.event_date,
        event_location=row.event_location,
        lines=lines,
        subtotal=Money(row.subtotal),
        service_fee=Money(row.service_fee),
        discount=Money(row.discount),
        total=Money(row.total),
        customer=Customer(
            name=row.customer_name, email=row.customer_email, phone=row.customer_phone
        ),
        payment_method=PaymentMethod(row.payment_method),
        status=OrderStatus(row.status),
        created_at=row.created_at,
        promo_code=row.promo_code,
        transaction_id=row.transaction_id,
        confirmed_at=row.confirmed_at,
        used_at=row.used_at,
        redeemed_by=row.redeemed_by,
        promo_counted=row.promo_counted,
    )


def _to_promo(row: models.PromoCode) -> PromoCode:
    return PromoCode(
        code=row.code,
        discount_type=DiscountType(row.discount_type),
        discount_value=Decimal(row.discount_value),
        min_purchase=Money(row.min_purchase),
        max_uses=row.max_uses,
        used_count=row.used_count,
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        is_active=row.is_active,
        event_id=EventId(row.event_id) if row.event_id else None,
    )


class DjangoTicketingStore(TicketingStore):
    """PostgreSQL-backed ticketing store using Django ORM."""

    @contextmanager
    def atomic(self) -> Iterator[None]:
        try:
            with transaction.atomic():
                yield
        except IntegrityError as exc:
            raise StorageUnavailableError("Ticket storage rejected the write") from exc
        except DatabaseError as exc:
            raise StorageUnavailableError() from exc

    @_storage_guard
    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(pk=event_id.value).first()
        return _to_event(row) if row else None

    @_storage_guard
    def get_tiers(self, event_id: EventId, for_update: bool = False) -> list[TicketTier]:
        queryset = models.TicketTier.objects.filter(event_id=event_id.value).order_by("pk")
        if for_update:
            queryset = queryset.select_for_update()
        return [_to_tier(row) for row in queryset]

    @_storage_guard
    def deduct_inventory(self, event_id: EventId, quantities: Mapping[TierId, int]) -> None:
        rows = {
            row.pk: row
            for row in models.TicketTier.objects.select_for_update()
            .filter(event_id=event_id.value, pk__in=[tier_id.value for tier_id in quantities])
            .order_by("pk")
        }
        for tier_id, quantity in quantities.items():
            row = rows.get(tier_id.value)
            if row is None:
                raise TierNotFoundError(str(tier_id))
            if row.capacity - row.sold < quantity:
                raise InsufficientInventoryError(row.name, row.capacity - row.sold)
        for tier_id, quantity in quantities.items():
            models.TicketTier.objects.filter(pk=tier_id.value).update(sold=F("sold") + quantity)

    @_storage_guard
    def release_inventory(self, event_id: EventId, quantities: Mapping[TierId, int]) -> None:
        rows = models.TicketTier.objects.select_for_update().filter(
            event_id=event_id.value, pk__in=[tier_id.value for tier_id in quantities]
        )
        for row in rows.order_by("pk"):
            row.sold = max(0, row.sold - quantities[TierId(row.pk)])
            row.save(update_fields=["sold"])

    @_storage_guard
    def add_order(self, order: Order) -> None:
        try:
            with transaction.atomic():
                row = models.Order.objects.create(
                    id=order.id.value,
                    tx_ref=order.tx_ref,
                    event_id=order.event_id.value,
                    event_title=order.event_title,
                    event_date=order.event_date,
                    event_location=order.event_location,
                    subtotal=order.subtotal.amount,
                    service_fee=order.service_fee.amount,
                    discount=order.discount.amount,
                    total=order.total.amount,
                    promo_code=order.promo_code,
                    customer_name=order.customer.name,
                    customer_email=order.customer.email,
                    customer_phone=order.customer.phone,
                    payment_method=order.payment_method.value,
                    status=order.status.value,
                    created_at=order.created_at,
                )
                models.OrderLine.objects.bulk_create(
                    models.OrderLine(
                        order=row,
                        position=position,
                        tier_id=line.tier_id.value,
                        tier_name=line.tier_name,
                        quantity=line.quantity,
                        unit_price=line.unit_price.amount,
                    )
                    for position, line in enumerate(order.lines)
                )
        except IntegrityError as exc:
            if models.Order.objects.filter(tx_ref=order.tx_ref).exists():
                raise DuplicateReferenceError(order.tx_ref) from exc
            raise StorageUnavailableError("Ticket storage rejected the order") from exc

    @_storage_guard
    def save_order(self, order: Order) -> None:
        models.Order.objects.filter(pk=order.id.value).update(
            status=order.status.value,
            transaction_id=order.transaction_id,
            confirmed_at=order.confirmed_at,
            used_at=order.used_at,
            redeemed_by=order.redeemed_by,
            promo_counted=order.promo_counted,
        )

    def _order_queryset(self, for_update: bool):
        queryset = models.Order.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset

    @_storage_guard
    def get_order(self, order_id: OrderId, for_update: bool = False) -> Order | None:
        row = self._order_queryset(for_update).filter(pk=order_id.value).first()
        return _to_order(row) if row else None

    @_storage_guard
    def get_order_by_reference(self, tx_ref: str, for_update: bool = False) -> Order | None:
        row = self._order_queryset(for_update).filter(tx_ref=tx_ref).first()
        return _to_order(row) if row else None

    @_storage_guard
    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        queryset = models.Order.objects.prefetch_related("lines").order_by("-created_at")
        if status is not None:
            queryset = queryset.filter(status=status.value)
        return [_to_order(row) for row in queryset]

    @_storage_guard
    def delete_order(self, order_id: OrderId) -> bool:
        deleted, _ = models.Order.objects.filter(pk=order_id.value).delete()
        return deleted > 0

    @_storage_guard
    def get_promo_code(self, code: str, for_update: bool = False) -> PromoCode | None:
        queryset = models.PromoCode.objects.filter(code__iexact=code.strip())
        if for_update:
            queryset = queryset.select_for_update()
        row = queryset.first()
        return _to_promo(row) if row else None

    @_storage_guard
    def list_promo_codes(self) -> list[PromoCode]:
        return [_to_promo(row) for row in models.PromoCode.objects.all()]

    @_storage_guard
    def increment_promo_usage(self, code: str) -> bool:
        updated = (
            models.PromoCode.objects.filter(code__iexact=code.strip())
            .filter(Q(max_uses=0) | Q(used_count__lt=F("max_uses")))
            .update(used_count=F("used_count") + 1)
        )
        return updated > 0

    @_storage_guard
    def decrement_promo_usage(self, code: str) -> bool:
        updated = models.PromoCode.objects.filter(
            code__iexact=code.strip(), used_count__gt=0
        ).update(used_count=F("used_count") - 1)
        return updated > 0
