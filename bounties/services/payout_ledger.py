"""
Payout ledger: one payout per bounty and merge, moved forward through its lifecycle.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from bounties.exceptions import DuplicatePayout, InvalidStateTransition, PayoutNotFound
from bounties.models import Bounty, BountyLog, Payout

logger = logging.getLogger(__name__)


def create_payout(bounty: Bounty, pull_request: dict, repository: dict) -> Payout:
    """
    Record a payout owed for a merged pull request.

    Raises DuplicatePayout when the same merge (or any live payout for the
    bounty) was already recorded, which is how redelivered webhooks are
    absorbed.
    """
    contributor = pull_request.get("user") or {}
    try:
        # Savepoint so a duplicate does not poison an enclosing transaction
        with transaction.atomic():
            payout = Payout.objects.create(
                repository_id=str(repository.get("id")),
                repository_name=repository.get("full_name") or repository.get("name") or "",
                pull_request_id=str(pull_request.get("id")),
                pull_request_number=pull_request["number"],
                issue_number=bounty.issue_number,
                bounty_id=bounty.pk,
                contributor_id=str(contributor.get("id")),
                contributor_name=contributor.get("login") or "",
                amount=bounty.amount,
                currency=bounty.currency,
                status=Payout.STATUS_PENDING_CLAIM,
            )
    except IntegrityError as e:
        logger.info(
            f"Duplicate payout suppressed for bounty {bounty.pk} "
            f"(PR #{pull_request.get('number')}, contributor {contributor.get('login')})"
        )
        raise DuplicatePayout(bounty_id=bounty.pk, pull_request_number=pull_request.get("number")) from e

    logger.info(f"Created payout {payout.pk} of {payout.amount} {payout.currency} for {payout.contributor_name}")
    return payout


def update_status(payout_id, new_status, expected=None) -> Payout:
    """
    Move a payout to new_status.

    The write is conditional on the status read here (or `expected`), so a
    concurrent change makes this raise InvalidStateTransition instead of
    overwriting it.
    """
    payout = Payout.objects.filter(pk=payout_id).first()
    if payout is None:
        raise PayoutNotFound(payout_id=payout_id)

    current = expected or payout.status
    if payout.status != current or not Payout.is_valid_transition(current, new_status):
        raise InvalidStateTransition(
            f"Cannot move payout {payout_id} from {payout.status} to {new_status}",
            current=payout.status,
            requested=new_status,
        )

    updated = Payout.objects.filter(pk=payout_id, status=current).update(status=new_status, updated_at=timezone.now())
    if not updated:
        payout.refresh_from_db()
        raise InvalidStateTransition(
            f"Payout {payout_id} changed to {payout.status} concurrently",
            current=payout.status,
            requested=new_status,
        )

    payout.status = new_status
    logger.info(f"Payout {payout_id}: {current} -> {new_status}")
    return payout


def reissue_payout(payout_id) -> Payout:
    """Open a fresh claimable payout for the same attempt as a failed one."""
    failed = Payout.objects.filter(pk=payout_id).first()
    if failed is None:
        raise PayoutNotFound(payout_id=payout_id)
    if failed.status != Payout.STATUS_FAILED:
        raise InvalidStateTransition(
            f"Only failed payouts can be reissued; payout {payout_id} is {failed.status}",
            current=failed.status,
        )

    try:
        with transaction.atomic():
            payout = Payout.objects.create(
                repository_id=failed.repository_id,
                repository_name=failed.repository_name,
                pull_request_id=failed.pull_request_id,
                pull_request_number=failed.pull_request_number,
                issue_number=failed.issue_number,
                bounty_id=failed.bounty_id,
                contributor_id=failed.contributor_id,
                contributor_name=failed.contributor_name,
                amount=failed.amount,
                currency=failed.currency,
                status=Payout.STATUS_PENDING_CLAIM,
            )
    except IntegrityError as e:
        raise DuplicatePayout(bounty_id=failed.bounty_id) from e

    BountyLog.objects.create(
        action="payout_reissued",
        bounty_id=failed.bounty_id,
        payout_id=payout.pk,
        details={"failed_payout_id": failed.pk},
    )
    logger.info(f"Reissued failed payout {failed.pk} as {payout.pk}")
    return payout
