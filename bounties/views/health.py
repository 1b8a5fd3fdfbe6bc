import logging
import time

from django.conf import settings
from django.db import DatabaseError
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from bounties.exceptions import GitHubAPIError
from bounties.models import Bounty
from bounties.services.github_service import GitHubService

logger = logging.getLogger(__name__)


def _elapsed_ms(start):
    return int((time.monotonic() - start) * 1000)


def check_database():
    start = time.monotonic()
    try:
        count = Bounty.objects.count()
    except DatabaseError as e:
        logger.error(f"Health check: database unreachable: {e}")
        return {"service": "database", "status": "unhealthy", "response_time": _elapsed_ms(start), "error": str(e)}
    return {
        "service": "database",
        "status": "healthy",
        "response_time": _elapsed_ms(start),
        "details": {"bounty_count": count},
    }


def check_github():
    start = time.monotonic()
    try:
        rate_limit = GitHubService().get_rate_limit(timeout=settings.HEALTH_CHECK_TIMEOUT)
    except GitHubAPIError as e:
        logger.warning(f"Health check: GitHub API unavailable: {e.message}")
        return {"service": "github_api", "status": "unhealthy", "response_time": _elapsed_ms(start), "error": e.message}

    rate = rate_limit.get("rate") or {}
    return {
        "service": "github_api",
        "status": "degraded" if rate.get("remaining") == 0 else "healthy",
        "response_time": _elapsed_ms(start),
        "details": {"remaining": rate.get("remaining"), "limit": rate.get("limit"), "reset": rate.get("reset")},
    }


@require_GET
def health_check(request):
    start = time.monotonic()
    checks = [check_database(), check_github()]

    statuses = [check["status"] for check in checks]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return JsonResponse(
        {
            "status": overall,
            "timestamp": timezone.now().isoformat(),
            "total_response_time": _elapsed_ms(start),
            "services": checks,
            "summary": {
                "total": len(checks),
                "healthy": statuses.count("healthy"),
                "degraded": statuses.count("degraded"),
                "unhealthy": statuses.count("unhealthy"),
            },
        },
        status=503 if overall == "unhealthy" else 200,
    )
