import copy
from decimal import Decimal
from unittest.mock import Mock, patch

from django.test import TestCase, override_settings

from bounties.exceptions import GitHubAuthError, GitHubNotFoundError, GitHubRateLimitError, ValidationFailed
from bounties.models import Bounty, BountyLog, Payout
from bounties.services.merge_handler import MergeEventHandler

MERGE_EVENT = {
    "action": "closed",
    "pull_request": {
        "id": 555,
        "number": 7,
        "title": "Improve widget",
        "body": "Fixes #42",
        "merged": True,
        "user": {"id": 42424, "login": "alice"},
    },
    "repository": {
        "id": 1001,
        "name": "widget",
        "full_name": "acme/widget",
        "private": False,
        "stargazers_count": 12,
    },
}


def merge_event(**pull_request_changes):
    event = copy.deepcopy(MERGE_EVENT)
    event["pull_request"].update(pull_request_changes)
    return event


class MergeEventHandlerTest(TestCase):
    def setUp(self):
        self.bounty = Bounty.objects.create(
            repository_id="1001",
            repository_name="acme/widget",
            issue_number=42,
            amount=Decimal("100.00"),
            creator_id="maintainer-1",
        )
        self.github = Mock()
        self.github.get_issue.side_effect = lambda full_name, number: {"number": number, "title": "Widget bug"}
        self.github.post_comment.return_value = {"id": 1}
        self.handler = MergeEventHandler(github=self.github, delay=0)

    def test_merged_pull_request_creates_payout(self):
        result = self.handler.handle(merge_event())

        self.assertEqual(result["status"], "processed")
        self.assertEqual(len(result["payouts"]), 1)
        payout = Payout.objects.get()
        self.assertEqual(payout.amount, Decimal("100.00"))
        self.assertEqual(payout.status, Payout.STATUS_PENDING_CLAIM)
        self.assertEqual(payout.contributor_name, "alice")
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_PENDING_PAYOUT)
        self.github.get_issue.assert_called_once_with("acme/widget", 42)
        self.assertTrue(BountyLog.objects.filter(action="payout_created", payout_id=payout.pk).exists())

    @override_settings(SITE_URL="https://bountyflow.example/")
    def test_claim_comment_links_to_payout(self):
        self.handler.handle(merge_event())

        payout = Payout.objects.get()
        full_name, pr_number, body = self.github.post_comment.call_args[0]
        self.assertEqual((full_name, pr_number), ("acme/widget", 7))
        self.assertIn(f"https://bountyflow.example/dashboard?claim={payout.pk}", body)
        self.assertIn("$100.00", body)

    def test_unmerged_pull_request_is_ignored(self):
        result = self.handler.handle(merge_event(merged=False))

        self.assertEqual(result["status"], "ignored")
        self.assertEqual(Payout.objects.count(), 0)
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_ACTIVE)
        self.github.get_issue.assert_not_called()

    def test_non_closed_action_is_ignored(self):
        event = merge_event()
        event["action"] = "synchronize"

        self.assertEqual(self.handler.handle(event)["status"], "ignored")
        self.assertEqual(Payout.objects.count(), 0)

    def test_private_repository_is_skipped(self):
        event = merge_event()
        event["repository"]["private"] = True

        result = self.handler.handle(event)

        self.assertEqual(result, {"status": "skipped", "reason": "private_repository"})
        self.assertEqual(Payout.objects.count(), 0)

    def test_no_references(self):
        result = self.handler.handle(merge_event(title="Tidy up", body="No linked issue"))
        self.assertEqual(result["status"], "no_references")
        self.assertEqual(Payout.objects.count(), 0)

    def test_no_matching_bounty(self):
        result = self.handler.handle(merge_event(body="Fixes #99"))
        self.assertEqual(result["status"], "no_match")
        self.assertEqual(Payout.objects.count(), 0)

    def test_missing_pull_request_number_is_rejected(self):
        event = merge_event()
        del event["pull_request"]["number"]
        with self.assertRaises(ValidationFailed):
            self.handler.handle(event)

    def test_duplicate_delivery_creates_one_payout(self):
        self.handler.handle(merge_event())
        second = self.handler.handle(merge_event())

        self.assertEqual(second["status"], "no_match")
        self.assertEqual(Payout.objects.count(), 1)

    def test_duplicate_payout_rolls_back_bounty_transition(self):
        # Bounty reopened while its payout is still live
        self.handler.handle(merge_event())
        Bounty.objects.filter(pk=self.bounty.pk).update(status=Bounty.STATUS_ACTIVE)

        result = self.handler.handle(merge_event())

        self.assertEqual(result["skipped"][0]["reason"], "duplicate")
        self.assertEqual(Payout.objects.count(), 1)
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_ACTIVE)

    def test_reference_to_pull_request_is_skipped(self):
        self.github.get_issue.side_effect = None
        self.github.get_issue.return_value = {"number": 42, "pull_request": {"url": "https://api.github.com/x"}}

        result = self.handler.handle(merge_event())

        self.assertEqual(result["skipped"][0]["reason"], "reference_is_pull_request")
        self.assertEqual(Payout.objects.count(), 0)
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_ACTIVE)

    def test_failed_issue_lookup_skips_only_that_bounty(self):
        second = Bounty.objects.create(
            repository_id="1001",
            repository_name="acme/widget",
            issue_number=43,
            amount=Decimal("40.00"),
            creator_id="maintainer-1",
        )

        def get_issue(full_name, number):
            if number == 42:
                raise GitHubNotFoundError(status=404)
            return {"number": number}

        self.github.get_issue.side_effect = get_issue

        result = self.handler.handle(merge_event(body="Fixes #42 and closes #43"))

        self.assertEqual(result["status"], "processed")
        self.assertEqual([p["bounty_id"] for p in result["payouts"]], [second.pk])
        self.assertEqual(result["skipped"][0]["reason"], "github_not_found")
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_ACTIVE)

    def test_auth_failure_is_classified(self):
        self.github.get_issue.side_effect = GitHubAuthError(status=401)

        result = self.handler.handle(merge_event())

        self.assertEqual(result["skipped"][0]["reason"], "github_auth_failed")
        self.assertEqual(Payout.objects.count(), 0)

    def test_notification_failure_keeps_payout(self):
        self.github.post_comment.side_effect = GitHubRateLimitError(status=429)

        result = self.handler.handle(merge_event())

        self.assertFalse(result["payouts"][0]["notified"])
        self.assertEqual(Payout.objects.count(), 1)
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_PENDING_PAYOUT)

    def test_unexpected_notification_error_keeps_payout(self):
        self.github.post_comment.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")

        result = self.handler.handle(merge_event())

        self.assertEqual(result["status"], "processed")
        self.assertEqual(result["skipped"], [])
        self.assertEqual(len(result["payouts"]), 1)
        self.assertFalse(result["payouts"][0]["notified"])
        self.assertEqual(result["payouts"][0]["payout_id"], Payout.objects.get().pk)
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_PENDING_PAYOUT)

    @patch("bounties.services.merge_handler.time.sleep")
    def test_delay_between_bounties(self, mock_sleep):
        Bounty.objects.create(
            repository_id="1001",
            repository_name="acme/widget",
            issue_number=43,
            amount=Decimal("40.00"),
            creator_id="maintainer-1",
        )
        handler = MergeEventHandler(github=self.github, delay=1.5)

        handler.handle(merge_event(body="Fixes #42, fixes #43"))

        mock_sleep.assert_called_once_with(1.5)
        self.assertEqual(Payout.objects.count(), 2)
