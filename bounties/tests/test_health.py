from unittest.mock import patch

from django.test import Client, TestCase
from django.urls import reverse

from bounties.exceptions import GitHubAPIError


class HealthCheckTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse("health-check")

    @patch("bounties.views.health.GitHubService")
    def test_healthy(self, mock_service):
        mock_service.return_value.get_rate_limit.return_value = {
            "rate": {"remaining": 4999, "limit": 5000, "reset": 1717200000}
        }

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["status"], "healthy")
        self.assertEqual(data["summary"]["healthy"], 2)
        mock_service.return_value.get_rate_limit.assert_called_once_with(timeout=5.0)

    @patch("bounties.views.health.GitHubService")
    def test_rate_limit_exhausted_is_degraded(self, mock_service):
        mock_service.return_value.get_rate_limit.return_value = {"rate": {"remaining": 0, "limit": 5000}}

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "degraded")

    @patch("bounties.views.health.GitHubService")
    def test_github_unreachable_is_unhealthy(self, mock_service):
        mock_service.return_value.get_rate_limit.side_effect = GitHubAPIError("GitHub API request timed out")

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 503)
        data = response.json()
        self.assertEqual(data["status"], "unhealthy")
        github = [s for s in data["services"] if s["service"] == "github_api"][0]
        self.assertEqual(github["error"], "GitHub API request timed out")
