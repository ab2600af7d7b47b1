"""Pytest configuration and shared fixtures."""

from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from tests.factories import FrozenClock, make_event, make_tier
from ticketing.domain import Capacity, Event, Money, TicketTier
from ticketing.services import InventoryLedger, OrderService, PromoCodeEngine, RedemptionVerifier
from ticketing.stores import get_store
from ticketing.stores.memory_store import InMemoryTicketingStore


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def reset_store():
    get_store.cache_clear()
    yield
    get_store.cache_clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryTicketingStore:
    return InMemoryTicketingStore()


@pytest.fixture
def event(store) -> Event:
    event = make_event()
    store.add_event(event)
    return event


@pytest.fixture
def regular_tier(store, event) -> TicketTier:
    tier = make_tier(event)
    store.add_event(event, [tier])
    return tier


@pytest.fixture
def vip_tier(store, event) -> TicketTier:
    tier = make_tier(event, name="VIP", price=Money(Decimal("20000")), capacity=Capacity(5), max_per_person=4)
    store.add_event(event, [tier])
    return tier


@pytest.fixture
def ledger(store, clock) -> InventoryLedger:
    return InventoryLedger(store, clock)


@pytest.fixture
def promo_engine(store, clock) -> PromoCodeEngine:
    return PromoCodeEngine(store, clock)


@pytest.fixture
def order_service(store, clock) -> OrderService:
    return OrderService(store, clock)


@pytest.fixture
def verifier(store, order_service) -> RedemptionVerifier:
    return RedemptionVerifier(store, order_service)
