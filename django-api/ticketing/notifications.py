"""Signals sent after order lifecycle changes are stored.

Receivers use them to refresh dependent views; nothing in the lifecycle
depends on their outcome.
"""

from django.dispatch import Signal

# Both send ``order`` (the domain Order after the change).
order_confirmed = Signal()
order_cancelled = Signal()
