from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from orders.archive import archive_enabled, archive_order
from orders.models import Order


class Command(BaseCommand):
    help = (
        "Re-run the order archive for orders that never got an archive status "
        "(e.g. the process stopped between commit and the background task)."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than-minutes",
            type=int,
            default=10,
            help="Only pick orders created at least this many minutes ago (default: 10).",
        )
        parser.add_argument(
            "--include-delayed",
            action="store_true",
            help="Also retry orders whose previous archive attempt was delayed.",
        )
        parser.add_argument("--limit", type=int, default=100, help="Maximum number of orders to process.")

    def handle(self, *args, **options):
        if not archive_enabled():
            raise CommandError("Order archive is disabled: ORDER_ARCHIVE_ENDPOINT is not set.")

        cutoff = timezone.now() - timedelta(minutes=max(0, options["older_than_minutes"]))
        statuses = [""]
        if options["include_delayed"]:
            statuses.append(Order.ArchiveStatus.DELAYED)

        pending = (
            Order.objects.filter(archive_status__in=statuses, created_at__lte=cutoff)
            .order_by("created_at")
            .values_list("pk", "order_number")[: max(0, options["limit"])]
        )

        archived = delayed = 0
        for pk, order_number in pending:
            outcome = archive_order(pk)
            if outcome == Order.ArchiveStatus.ARCHIVED:
                archived += 1
                self.stdout.write(self.style.SUCCESS(f"Archived {order_number}"))
            else:
                delayed += 1
                self.stdout.write(self.style.WARNING(f"Still delayed: {order_number}"))

        self.stdout.write(self.style.SUCCESS(f"Done: {archived} archived, {delayed} delayed."))
