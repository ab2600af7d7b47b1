"""Signal handlers for cache invalidation.

Seat counts change when orders are confirmed or cancelled and when admin
tooling edits events or tiers.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from ticketing.cache import invalidate_availability
from ticketing.models import Event, TicketTier
from ticketing.notifications import order_cancelled, order_confirmed


@receiver([order_confirmed, order_cancelled])
def invalidate_order_event_cache(sender, order, **kwargs):
    """Invalidate the availability cache of the order's event."""
    invalidate_availability(order.event_id)


@receiver([post_save, post_delete], sender=Event)
def invalidate_event_cache(sender, instance, **kwargs):
    """Invalidate caches when an event is saved or deleted."""
    invalidate_availability(instance.pk)


@receiver([post_save, post_delete], sender=TicketTier)
def invalidate_ticket_tier_cache(sender, instance, **kwargs):
    """Invalidate caches when a ticket tier is saved or deleted."""
    invalidate_availability(instance.event_id)
