import functools

from django.utils.module_loading import import_string

from ticketing.conf import get_setting
from ticketing.stores.interfaces import TicketingStore


@functools.cache
def get_store() -> TicketingStore:
    """Return the configured store. One instance is shared per process."""
    store_class = import_string(get_setting("STORE"))
    return store_class()


__all__ = ["TicketingStore", "get_store"]
