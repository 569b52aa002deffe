"""
Internal merchant credential lookup.

Used by internal tooling to fetch the token and location the backend
would use for a merchant. Guarded by a shared internal API key.
"""

import hmac
import json
import logging

from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.web.core.decorators import error_response, unwrap_payload
from apps.web.core.exceptions import InvalidArgument, ServiceError
from apps.web.merchants.services import resolve_credentials

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Internal-Api-Key"


def _authorized(request: HttpRequest) -> bool:
    expected = settings.INTERNAL_API_KEY
    provided = request.headers.get(API_KEY_HEADER, "")
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided, expected)


def _merchant_id(request: HttpRequest) -> str:
    merchant_id = request.GET.get("merchantId", "")
    if merchant_id or request.method != "POST" or not request.body:
        return merchant_id
    try:
        body = unwrap_payload(json.loads(request.body))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidArgument("Invalid JSON in request body") from e
    if isinstance(body, dict):
        return str(body.get("merchantId", ""))
    return ""


@csrf_exempt
@require_http_methods(["GET", "POST"])
def credentials(request: HttpRequest) -> JsonResponse:
    """
    Return a merchant's access token and location.

    GET/POST /credentials?merchantId=<id>

    Responses:
        200: {"accessToken": "...", "locationId": "..."}
        400: merchantId missing
        401: missing or wrong X-Internal-Api-Key
        404: no credentials for the merchant
    """
    if not _authorized(request):
        logger.warning("Rejected credentials request without valid API key")
        return JsonResponse(
            {"error": {"code": "unauthenticated", "message": "Unauthorized"}},
            status=401,
        )

    try:
        merchant_id = _merchant_id(request)
        if not merchant_id:
            raise InvalidArgument("merchantId is required")
        resolved = resolve_credentials(merchant_id)
    except ServiceError as e:
        return error_response(e)

    return JsonResponse(
        {"accessToken": resolved.access_token, "locationId": resolved.location_id}
    )
