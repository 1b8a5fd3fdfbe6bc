import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import patch

from django.test import Client, TestCase, override_settings
from django.urls import reverse

from bounties.models import Bounty, BountyLog, EnabledRepository, GitHubInstallation, Payout
from bounties.tests.test_merge_handler import merge_event

WEBHOOK_SECRET = "test-webhook-secret"


def sign(body, secret=WEBHOOK_SECRET):
    return "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class GitHubWebhookSignatureTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse("github-webhook")
        self.bounty = Bounty.objects.create(
            repository_id="1001",
            repository_name="acme/widget",
            issue_number=42,
            amount=Decimal("100.00"),
            creator_id="maintainer-1",
        )
        self.body = json.dumps(merge_event()).encode("utf-8")

        patcher = patch("bounties.services.merge_handler.GitHubService")
        self.mock_service = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_service.return_value.get_issue.return_value = {"number": 42}
        self.mock_service.return_value.post_comment.return_value = {"id": 1}

    def post(self, body, event="pull_request", **headers):
        return self.client.post(
            self.url,
            data=body,
            content_type="application/json",
            HTTP_X_GITHUB_EVENT=event,
            HTTP_X_GITHUB_DELIVERY="delivery-1",
            **headers,
        )

    @override_settings(GITHUB_WEBHOOK_SECRET=WEBHOOK_SECRET)
    def test_valid_signature_processes_merge(self):
        response = self.post(self.body, HTTP_X_HUB_SIGNATURE_256=sign(self.body))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["status"], "processed")
        self.assertEqual(Payout.objects.count(), 1)

    @override_settings(GITHUB_WEBHOOK_SECRET=WEBHOOK_SECRET)
    def test_missing_signature_is_rejected_before_processing(self):
        response = self.post(self.body)

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "invalid_signature")
        self.assertEqual(Payout.objects.count(), 0)
        self.mock_service.return_value.get_issue.assert_not_called()

    @override_settings(GITHUB_WEBHOOK_SECRET=WEBHOOK_SECRET)
    def test_wrong_signature_is_rejected(self):
        response = self.post(self.body, HTTP_X_HUB_SIGNATURE_256=sign(self.body, secret="other-secret"))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(Payout.objects.count(), 0)
        self.bounty.refresh_from_db()
        self.assertEqual(self.bounty.status, Bounty.STATUS_ACTIVE)

    @override_settings(GITHUB_WEBHOOK_SECRET=WEBHOOK_SECRET)
    def test_tampered_body_is_rejected(self):
        signature = sign(self.body)
        tampered = self.body.replace(b"Fixes #42", b"Fixes #43")

        response = self.post(tampered, HTTP_X_HUB_SIGNATURE_256=signature)

        self.assertEqual(response.status_code, 401)

    @override_settings(GITHUB_WEBHOOK_SECRET="")
    def test_unconfigured_secret_skips_verification(self):
        response = self.post(self.body)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Payout.objects.count(), 1)

    @override_settings(GITHUB_WEBHOOK_SECRET="")
    def test_ping(self):
        response = self.post(json.dumps({"zen": "Keep it logically awesome."}), event="ping")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "pong")

    @override_settings(GITHUB_WEBHOOK_SECRET="")
    def test_unhandled_event_is_ignored(self):
        response = self.post(json.dumps({"action": "opened"}), event="issues")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ignored")

    @override_settings(GITHUB_WEBHOOK_SECRET="")
    def test_invalid_json(self):
        response = self.post("{not json")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)


@override_settings(GITHUB_WEBHOOK_SECRET="")
class InstallationWebhookTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse("github-webhook")

    def post(self, event, payload):
        return self.client.post(
            self.url, data=json.dumps(payload), content_type="application/json", HTTP_X_GITHUB_EVENT=event
        )

    def installation_payload(self, action):
        return {
            "action": action,
            "installation": {
                "id": 777,
                "account": {"id": 9, "login": "acme", "type": "Organization"},
                "permissions": {"issues": "write", "pull_requests": "read"},
                "repository_selection": "selected",
            },
        }

    def test_installation_created(self):
        response = self.post("installation", self.installation_payload("created"))

        self.assertEqual(response.status_code, 200)
        installation = GitHubInstallation.objects.get(installation_id="777")
        self.assertEqual(installation.account_login, "acme")
        self.assertEqual(installation.account_type, "Organization")
        self.assertEqual(installation.repository_selection, "selected")
        self.assertEqual(installation.permissions["issues"], "write")

    def test_installation_deleted_is_soft_deleted(self):
        self.post("installation", self.installation_payload("created"))

        response = self.post("installation", self.installation_payload("deleted"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "deactivated")
        installation = GitHubInstallation.objects.get(installation_id="777")
        self.assertEqual(installation.repository_selection, "inactive")
        self.assertTrue(BountyLog.objects.filter(action="soft_deletion_completed").exists())

    def test_suspend_and_unsuspend(self):
        self.post("installation", self.installation_payload("created"))

        self.post("installation", self.installation_payload("suspend"))
        self.assertEqual(GitHubInstallation.objects.get().repository_selection, "suspended")

        self.post("installation", self.installation_payload("unsuspend"))
        self.assertEqual(GitHubInstallation.objects.get().repository_selection, "selected")

    def test_unknown_installation_is_ignored(self):
        response = self.post("installation", self.installation_payload("deleted"))
        self.assertEqual(response.json()["status"], "ignored")
        self.assertEqual(GitHubInstallation.objects.count(), 0)

    def test_repositories_removed_are_disabled(self):
        repository = EnabledRepository.objects.create(
            user_id="maintainer-1",
            repository_id="1001",
            repository_name="widget",
            repository_full_name="acme/widget",
        )
        payload = {
            "action": "removed",
            "installation": {"id": 777},
            "repositories_removed": [{"id": 1001, "full_name": "acme/widget"}],
        }

        response = self.post("installation_repositories", payload)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)
        repository.refresh_from_db()
        self.assertFalse(repository.enabled)
        self.assertEqual(EnabledRepository.objects.count(), 1)
