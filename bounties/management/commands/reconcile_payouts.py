import logging

from django.core.management.base import BaseCommand

from bounties.exceptions import InvalidStateTransition
from bounties.models import BountyLog, Payout
from bounties.services import bounty_store, payout_ledger

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Mark payouts paid when a completed transaction shows the money already moved"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List payouts that would be reconciled without changing them",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        stranded = (
            Payout.objects.filter(status__in=Payout.IN_FLIGHT_STATUSES, transactions__status="completed")
            .distinct()
            .order_by("pk")
        )

        count = stranded.count()
        if not count:
            self.stdout.write(self.style.SUCCESS("No payouts need reconciliation"))
            return

        if dry_run:
            self.stdout.write(self.style.WARNING(f"DRY RUN: Would reconcile {count} payouts"))
            for payout in stranded:
                self.stdout.write(
                    f"  - payout {payout.pk} ({payout.status}) {payout.amount} to {payout.contributor_name}"
                )
            return

        reconciled = 0
        for payout in stranded:
            try:
                payout_ledger.update_status(payout.pk, Payout.STATUS_PAID, expected=payout.status)
            except InvalidStateTransition as e:
                self.stdout.write(self.style.ERROR(f"Payout {payout.pk} skipped: {e.message}"))
                continue
            bounty_store.mark_paid(payout.bounty_id)
            BountyLog.objects.create(
                action="payout_reconciled",
                bounty_id=payout.bounty_id,
                payout_id=payout.pk,
                details={"previous_status": payout.status},
            )
            logger.info(f"Reconciled payout {payout.pk} from {payout.status} to paid")
            reconciled += 1

        self.stdout.write(self.style.SUCCESS(f"Reconciled {reconciled} of {count} payouts"))
