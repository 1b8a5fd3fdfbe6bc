"""
Data access for bounties.

Status changes are conditional updates keyed on the expected current status,
so two concurrent callers can never both move the same bounty.
"""
import logging
from typing import Iterable, List

from django.utils import timezone

from bounties.models import Bounty
from bounties.services.protection import gatekeeper

logger = logging.getLogger(__name__)


def find_active_bounties(repository_id) -> List[Bounty]:
    return list(Bounty.objects.filter(repository_id=str(repository_id), status=Bounty.STATUS_ACTIVE))


def match_bounties_to_issues(bounties: Iterable[Bounty], issue_numbers: Iterable[int]) -> List[Bounty]:
    wanted = set(issue_numbers)
    return [bounty for bounty in bounties if bounty.issue_number in wanted]


def _transition(bounty_id, expected, new) -> bool:
    updated = Bounty.objects.filter(pk=bounty_id, status=expected).update(status=new, updated_at=timezone.now())
    if not updated:
        logger.info(f"Bounty {bounty_id} was not {expected}; transition to {new} skipped")
    return bool(updated)


def transition_to_pending_payout(bounty_id) -> bool:
    """Move an active bounty to pending_payout. Returns False if another caller got there first."""
    return _transition(bounty_id, Bounty.STATUS_ACTIVE, Bounty.STATUS_PENDING_PAYOUT)


def mark_paid(bounty_id) -> bool:
    return _transition(bounty_id, Bounty.STATUS_PENDING_PAYOUT, Bounty.STATUS_PAID)


def deactivate_bounty(bounty_id):
    """Take a bounty out of active use. Goes through the protection gatekeeper."""
    return gatekeeper.soft_delete("bounties", bounty_id, action="mark_inactive")
