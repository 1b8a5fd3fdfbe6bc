import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from bounties.exceptions import BountyFlowError
from bounties.services.protection import gatekeeper
from bounties.views.common import check_api_token, error_response, parse_json_body

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def repository_protection(request):
    """Body: {"action": ..., "table": ..., "targetId": ...}"""
    try:
        check_api_token(request)
        data = parse_json_body(request)
        result = gatekeeper.handle(data.get("action"), data.get("table"), data.get("targetId"))
        return JsonResponse(result)
    except BountyFlowError as e:
        return error_response(e)
    except Exception:
        logger.exception("Unexpected error in repository_protection")
        return JsonResponse({"success": False, "error": "Protection service error"}, status=500)
