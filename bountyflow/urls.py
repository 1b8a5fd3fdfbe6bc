from django.urls import path

from bounties.views.claims import claim_payout
from bounties.views.health import health_check
from bounties.views.protection import repository_protection
from bounties.views.scoring import analyze_issue_complexity
from bounties.views.webhooks import github_webhook

urlpatterns = [
    path("webhooks/github/", github_webhook, name="github-webhook"),
    path("api/payouts/claim/", claim_payout, name="claim-payout"),
    path("api/protection/", repository_protection, name="repository-protection"),
    path("api/bounties/analyze/", analyze_issue_complexity, name="analyze-issue-complexity"),
    path("health/", health_check, name="health-check"),
]
