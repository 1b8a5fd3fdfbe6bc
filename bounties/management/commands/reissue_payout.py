from django.core.management.base import BaseCommand, CommandError

from bounties.exceptions import BountyFlowError
from bounties.services import payout_ledger


class Command(BaseCommand):
    help = "Open a new claimable payout in place of a failed one"

    def add_arguments(self, parser):
        parser.add_argument("payout_id", type=int, help="ID of the failed payout")

    def handle(self, *args, **options):
        try:
            payout = payout_ledger.reissue_payout(options["payout_id"])
        except BountyFlowError as e:
            raise CommandError(e.message)
        self.stdout.write(
            self.style.SUCCESS(f"Reissued payout {options['payout_id']} as {payout.pk} ({payout.status})")
        )
