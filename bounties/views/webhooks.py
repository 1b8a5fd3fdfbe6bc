"""
GitHub webhook ingress: signature check first, then dispatch by event type.
"""
import hashlib
import hmac
import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from bounties.exceptions import BountyFlowError, InvalidSignature
from bounties.services.installations import handle_installation_event, handle_installation_repositories_event
from bounties.services.merge_handler import MergeEventHandler
from bounties.views.common import error_response, parse_json_body

logger = logging.getLogger(__name__)


def verify_github_signature(request):
    """
    Verify the X-Hub-Signature-256 header when a webhook secret is configured.

    Raises InvalidSignature on a missing or mismatched signature.
    """
    secret = settings.GITHUB_WEBHOOK_SECRET
    if not secret:
        logger.debug("GITHUB_WEBHOOK_SECRET not configured; skipping signature verification")
        return

    signature_header = request.headers.get("X-Hub-Signature-256")
    if not signature_header:
        logger.warning("GitHub webhook received without X-Hub-Signature-256 header")
        raise InvalidSignature()

    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    computed_signature = "sha256=" + hmac.new(secret, request.body, hashlib.sha256).hexdigest()

    if not hmac.compare_digest(computed_signature, signature_header):
        logger.warning("GitHub webhook signature verification failed")
        raise InvalidSignature()


def handle_pull_request(payload):
    return MergeEventHandler().handle(payload)


EVENT_HANDLERS = {
    "pull_request": handle_pull_request,
    "installation": handle_installation_event,
    "installation_repositories": handle_installation_repositories_event,
}


@csrf_exempt
@require_POST
def github_webhook(request):
    event_type = request.headers.get("X-GitHub-Event", "")
    delivery = request.headers.get("X-GitHub-Delivery", "")

    try:
        verify_github_signature(request)
        payload = parse_json_body(request)

        logger.info(f"Received GitHub webhook event: {event_type} ({delivery})")
        if event_type == "ping":
            return JsonResponse({"status": "pong"})

        handler = EVENT_HANDLERS.get(event_type)
        if handler is None:
            return JsonResponse({"status": "ignored", "event": event_type})

        result = handler(payload)
        return JsonResponse({"success": True, "event": event_type, **result})
    except BountyFlowError as e:
        return error_response(e)
    except Exception:
        logger.exception(f"Unexpected error handling GitHub webhook {event_type}")
        return JsonResponse({"success": False, "error": "Internal server error"}, status=500)
