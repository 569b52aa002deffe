"""
POS webhook endpoint.

Square posts order and fulfillment events here. The signature is always
verified before the body is parsed; unsigned or mis-signed requests get
a 401 and change nothing.
"""

import json
import logging

from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from apps.web.pos.adapters.square import SIGNATURE_HEADER, SquareAdapter
from apps.web.pos.exceptions import POSSignatureError, POSWebhookError
from apps.web.pos.services import process_webhook_event

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def square_webhook(request: HttpRequest) -> HttpResponse:
    """
    Handle Square webhook events.

    POST /webhook

    Responses:
        200: processed, or an event type we do not handle
        400: body is not JSON or the event is malformed
        401: signature missing or invalid
        500: unexpected processing error (Square retries)
    """
    adapter = SquareAdapter()
    try:
        _verify_signature(request, adapter)
    except POSSignatureError as e:
        logger.warning("Rejected Square webhook: %s", e)
        return HttpResponse("Invalid signature", status=401)

    try:
        payload = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Invalid Square webhook payload: %s", e)
        return HttpResponse("Invalid payload", status=400)
    if not isinstance(payload, dict):
        return HttpResponse("Invalid payload", status=400)

    try:
        event = adapter.parse_webhook(payload)
    except POSWebhookError as e:
        logger.warning("Malformed Square webhook: %s", e)
        return HttpResponse("Malformed event", status=400)

    if event is None:
        return HttpResponse(status=200)

    try:
        outcome = process_webhook_event(event)
    except Exception as e:
        logger.exception("Failed to process Square webhook %s: %s", event.event_id, e)
        return HttpResponse("Processing error", status=500)

    logger.info("Square webhook %s: %s", event.event_id, outcome.value)
    return HttpResponse(status=200)


def _verify_signature(request: HttpRequest, adapter: SquareAdapter) -> None:
    """
    Check the Square signature over the notification URL and raw body.

    Raises:
        POSSignatureError: If the signature is missing or does not match.
    """
    notification_url = (
        settings.SQUARE_WEBHOOK_NOTIFICATION_URL or request.build_absolute_uri()
    )
    if not adapter.verify_webhook_signature(
        request.body,
        request.headers.get(SIGNATURE_HEADER, ""),
        settings.SQUARE_WEBHOOK_SIGNATURE_KEY,
        notification_url=notification_url,
    ):
        raise POSSignatureError("Signature missing or invalid", provider="square")
