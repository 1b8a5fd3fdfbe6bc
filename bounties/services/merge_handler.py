"""
Turns a merged pull request into payouts for the bounties it closes.

Each matched bounty is handled on its own: a failed issue lookup, a duplicate
delivery or a GitHub error skips that bounty and processing continues with
the next one. Retries are left to GitHub's webhook redelivery, which the
payout ledger's uniqueness constraints make safe.
"""
import logging
import time

from django.conf import settings
from django.db import transaction

from bounties.exceptions import BountyFlowError, DuplicatePayout, GitHubAPIError, ValidationFailed
from bounties.models import BountyLog
from bounties.references import extract_issue_numbers, pull_request_text
from bounties.services import bounty_store, payout_ledger
from bounties.services.github_service import GitHubService

logger = logging.getLogger(__name__)

CLAIM_COMMENT = """🎉 Congratulations! Your pull request has been merged and you've earned a ${amount} bounty!

[Claim your reward here]({claim_url})

This payment will be processed through Coinbase and sent to your connected wallet."""


def claim_url(payout):
    return f"{settings.SITE_URL.rstrip('/')}/dashboard?claim={payout.pk}"


class MergeEventHandler:
    def __init__(self, github=None, delay=None):
        self.github = github or GitHubService()
        self.delay = settings.MERGE_EVENT_BOUNTY_DELAY if delay is None else delay

    def handle(self, payload: dict) -> dict:
        """
        Process one pull_request webhook payload.

        Returns a summary dict whose "status" is one of ignored, skipped,
        no_references, no_match or processed. Only a malformed payload raises.
        """
        pull_request = payload.get("pull_request") or {}
        repository = payload.get("repository") or {}

        if payload.get("action") != "closed" or pull_request.get("merged") is not True:
            logger.info("Pull request event is not a merge; ignoring")
            return {"status": "ignored", "reason": "not_merged"}

        if not pull_request.get("number") or repository.get("id") is None:
            raise ValidationFailed("Merge event is missing pull_request.number or repository.id")

        full_name = repository.get("full_name") or repository.get("name")
        if repository.get("private"):
            logger.info(f"Skipping merge in private repository {full_name}")
            return {"status": "skipped", "reason": "private_repository"}

        issue_numbers = extract_issue_numbers(pull_request_text(pull_request))
        if not issue_numbers:
            logger.info(f"No issue references in PR #{pull_request['number']} of {full_name}")
            return {"status": "no_references"}

        active = bounty_store.find_active_bounties(repository["id"])
        matched = bounty_store.match_bounties_to_issues(active, issue_numbers)
        if not matched:
            logger.info(f"No active bounties for issues {issue_numbers} in {full_name}")
            return {"status": "no_match", "issue_numbers": issue_numbers}

        logger.info(f"PR #{pull_request['number']} in {full_name} matches {len(matched)} bounties")
        payouts, skipped = [], []
        for index, bounty in enumerate(matched):
            if index:
                time.sleep(self.delay)
            try:
                result = self._process_bounty(bounty, pull_request, repository)
            except Exception as e:
                logger.exception(f"Unexpected error processing bounty {bounty.pk}: {e}")
                result = {"skipped": True, "reason": "error"}

            if result.get("skipped"):
                skipped.append(
                    {"bounty_id": bounty.pk, "issue_number": bounty.issue_number, "reason": result["reason"]}
                )
            else:
                payouts.append(result)

        return {"status": "processed", "payouts": payouts, "skipped": skipped}

    def _process_bounty(self, bounty, pull_request, repository):
        full_name = repository.get("full_name") or repository.get("name")

        try:
            issue = self.github.get_issue(full_name, bounty.issue_number)
        except GitHubAPIError as e:
            logger.warning(f"Skipping bounty {bounty.pk}: issue #{bounty.issue_number} lookup failed ({e.code})")
            return {"skipped": True, "reason": e.code}
        if issue.get("pull_request"):
            logger.warning(f"Skipping bounty {bounty.pk}: #{bounty.issue_number} is a pull request, not an issue")
            return {"skipped": True, "reason": "reference_is_pull_request"}

        try:
            with transaction.atomic():
                if not bounty_store.transition_to_pending_payout(bounty.pk):
                    return {"skipped": True, "reason": "bounty_not_active"}
                payout = payout_ledger.create_payout(bounty, pull_request, repository)
                BountyLog.objects.create(
                    action="payout_created",
                    bounty_id=bounty.pk,
                    payout_id=payout.pk,
                    details={
                        "pull_request_number": pull_request["number"],
                        "contributor": payout.contributor_name,
                        "amount": str(payout.amount),
                    },
                )
        except DuplicatePayout:
            return {"skipped": True, "reason": "duplicate"}
        except BountyFlowError as e:
            logger.error(f"Could not create payout for bounty {bounty.pk}: {e.message}")
            return {"skipped": True, "reason": e.code}

        notified = self._notify(payout, full_name, pull_request["number"])
        return {"payout_id": payout.pk, "bounty_id": bounty.pk, "amount": str(payout.amount), "notified": notified}

    def _notify(self, payout, full_name, pr_number):
        # Best effort: the payout stands whether or not the comment is posted
        body = CLAIM_COMMENT.format(amount=payout.amount, claim_url=claim_url(payout))
        try:
            self.github.post_comment(full_name, pr_number, body)
        except GitHubAPIError as e:
            logger.warning(f"Failed to post claim comment for payout {payout.pk}: {e.message}")
            return False
        except Exception:
            logger.exception(f"Unexpected error posting claim comment for payout {payout.pk}")
            return False
        logger.info(f"Posted claim comment for payout {payout.pk} on {full_name}#{pr_number}")
        return True
