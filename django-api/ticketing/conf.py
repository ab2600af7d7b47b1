"""App settings, read from the ``TICKETING`` dict in Django settings."""

from django.conf import settings

DEFAULTS = {
    "STORE": "ticketing.stores.django_store.DjangoTicketingStore",
    "SERVICE_FEE": 500,
    "CURRENCY": "RWF",
    "REFERENCE_PREFIX": "SOP",
    "AVAILABILITY_CACHE_TIMEOUT": 60,
    "STALE_ORDER_HOURS": 48,
}


def get_setting(name: str):
    return getattr(settings, "TICKETING", {}).get(name, DEFAULTS[name])
