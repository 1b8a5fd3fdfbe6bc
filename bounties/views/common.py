import json
import logging
import secrets

from django.conf import settings
from django.http import JsonResponse

from bounties.exceptions import Unauthorized, ValidationFailed

logger = logging.getLogger(__name__)


def error_response(error):
    """Render a BountyFlowError as the JSON body callers expect."""
    return JsonResponse(error.as_dict(), status=error.status_code)


def check_api_token(request):
    """Constant-time check of the X-BountyFlow-Token header."""
    expected_token = settings.BOUNTYFLOW_API_TOKEN
    if not expected_token:
        logger.error("BOUNTYFLOW_API_TOKEN is not configured")
        raise Unauthorized("Server configuration error")

    received_token = request.headers.get("X-BountyFlow-Token")
    if not received_token or not secrets.compare_digest(received_token, expected_token):
        logger.warning("Invalid or missing API token")
        raise Unauthorized()


def parse_json_body(request):
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Invalid JSON in request body")
        raise ValidationFailed("Invalid JSON")
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return data
