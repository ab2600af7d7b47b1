"""
Cancel pending orders that never completed payment.

Pending orders hold no seats, so this only keeps order history tidy.

Usage:
    python manage.py cancel_stale_orders
    python manage.py cancel_stale_orders --hours 24 --dry-run
"""

from datetime import timedelta

from django.core.management.base import BaseCommand

from ticketing.conf import get_setting
from ticketing.services import OrderService
from ticketing.stores import get_store


class Command(BaseCommand):
    help = "Cancel pending ticket orders older than a cutoff"

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=int,
            default=None,
            help="Age in hours after which a pending order is stale",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be cancelled without doing it",
        )

    def handle(self, *args, **options):
        hours = options["hours"] or get_setting("STALE_ORDER_HOURS")
        older_than = timedelta(hours=hours)
        service = OrderService(get_store())

        if options["dry_run"]:
            stale = service.find_stale_orders(older_than)
            if not stale:
                self.stdout.write(self.style.SUCCESS("No stale pending orders."))
                return
            self.stdout.write(
                self.style.WARNING(f"DRY RUN: {len(stale)} pending order(s) would be cancelled:")
            )
            for order in stale[:10]:
                self.stdout.write(f"  - {order.tx_ref} created {order.created_at:%Y-%m-%d %H:%M}")
            if len(stale) > 10:
                self.stdout.write(f"  ... and {len(stale) - 10} more")
            return

        cancelled = service.cancel_stale_orders(older_than)
        self.stdout.write(
            self.style.SUCCESS(f"Cancelled {len(cancelled)} stale pending order(s).")
        )
