"""Cache keys for read-mostly payloads."""

from django.core.cache import cache


def availability_key(event_id) -> str:
    return f"ticketing:events:{event_id}:availability"


def invalidate_availability(event_id) -> None:
    cache.delete(availability_key(event_id))
