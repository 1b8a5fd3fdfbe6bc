import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from bounties.exceptions import BountyFlowError
from bounties.services.settlement import ClaimSettlementProcessor
from bounties.views.common import check_api_token, error_response, parse_json_body

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def claim_payout(request):
    """
    Claim a payout and settle it to the contributor's destination.

    Body: {"payoutId": ..., "contributorId": ..., "destination": {...}}
    """
    try:
        check_api_token(request)
        data = parse_json_body(request)
        result = ClaimSettlementProcessor().settle(
            data.get("payoutId"),
            data.get("contributorId"),
            data.get("destination"),
        )
        return JsonResponse(result)
    except BountyFlowError as e:
        logger.info(f"Claim rejected: {e.code}: {e.message}")
        return error_response(e)
    except Exception:
        logger.exception("Unexpected error in claim_payout")
        return JsonResponse({"success": False, "error": "An unexpected error occurred"}, status=500)
