import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from bounties.exceptions import BountyFlowError, ValidationFailed
from bounties.scoring import LabelScorer, SimpleLabelScorer, analyze_issues
from bounties.views.common import error_response, parse_json_body

logger = logging.getLogger(__name__)

SCORERS = {
    "labels": LabelScorer,
    "simple": SimpleLabelScorer,
}


@csrf_exempt
@require_POST
def analyze_issue_complexity(request):
    try:
        data = parse_json_body(request)
        repository = data.get("repository")
        issues = data.get("issues")
        if not repository or not isinstance(issues, list):
            raise ValidationFailed("Invalid request: repository and issues array required")

        scorer_class = SCORERS.get(data.get("strategy") or "labels")
        if scorer_class is None:
            raise ValidationFailed(f"Unknown strategy. Supported: {', '.join(SCORERS)}")

        logger.info(f"Analyzing {len(issues)} issues for repository: {repository}")
        result = analyze_issues(issues, scorer_class())
        return JsonResponse({"repository": repository, **result})
    except BountyFlowError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error in analyze_issue_complexity")
        return JsonResponse({"success": False, "error": "Internal server error"}, status=500)
