"""
GitHub REST API client used by the merge pipeline and the health check
"""
import logging
from typing import Dict, Optional

import requests
from django.conf import settings

from bounties.exceptions import GitHubAPIError, GitHubAuthError, GitHubNotFoundError, GitHubRateLimitError

logger = logging.getLogger(__name__)


def classify_github_error(response) -> GitHubAPIError:
    """Map a failed GitHub response onto the matching error class."""
    status = response.status_code
    try:
        message = response.json().get("message", "")
    except ValueError:
        message = response.text[:200]

    if status == 429 or (status == 403 and response.headers.get("X-RateLimit-Remaining") == "0"):
        return GitHubRateLimitError(message or None, status=status)
    if status in (401, 403):
        return GitHubAuthError(message or None, status=status)
    if status == 404:
        return GitHubNotFoundError(message or None, status=status)
    return GitHubAPIError(message or f"GitHub API returned {status}", status=status)


class GitHubService:
    """Service for interacting with the GitHub API"""

    def __init__(self, token=None, base_url=None, timeout=None):
        self.base_url = (base_url or settings.GITHUB_API_URL).rstrip("/")
        self.timeout = timeout or settings.EXTERNAL_CALL_TIMEOUT
        self.headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "BountyFlow",
        }
        github_token = token or getattr(settings, "GITHUB_TOKEN", None)
        if github_token:
            self.headers["Authorization"] = f"token {github_token}"

    def _request(self, method, path, timeout=None, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, headers=self.headers, timeout=timeout or self.timeout, **kwargs)
        except requests.Timeout:
            logger.error(f"GitHub API timed out: {method} {path}")
            raise GitHubAPIError("GitHub API request timed out")
        except requests.RequestException as e:
            logger.error(f"GitHub API request failed: {method} {path}: {e}")
            raise GitHubAPIError(f"GitHub API request failed: {e}")

        if response.status_code >= 400:
            error = classify_github_error(response)
            logger.warning(f"GitHub API {method} {path} returned {response.status_code}: {error.message}")
            raise error
        try:
            return response.json()
        except ValueError:
            logger.error(f"GitHub API {method} {path} returned a non-JSON body")
            raise GitHubAPIError("Invalid GitHub API response", status=response.status_code)

    def get_issue(self, full_name: str, issue_number: int) -> Dict:
        """
        Fetch an issue by number.

        Args:
            full_name: Repository in owner/name form
            issue_number: Issue number in that repository

        Returns:
            The issue payload. Pull requests are returned by this endpoint too
            and carry a "pull_request" key.
        """
        return self._request("GET", f"/repos/{full_name}/issues/{issue_number}")

    def post_comment(self, full_name: str, issue_number: int, body: str) -> Dict:
        """Post a comment on an issue or pull request."""
        return self._request("POST", f"/repos/{full_name}/issues/{issue_number}/comments", json={"body": body})

    def get_rate_limit(self, timeout: Optional[float] = None) -> Dict:
        return self._request("GET", "/rate_limit", timeout=timeout)
