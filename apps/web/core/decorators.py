"""
Decorators for request handling and validation.
"""

import json
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.http import HttpRequest, JsonResponse

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.core.exceptions import InvalidArgument, ServiceError

logger = logging.getLogger(__name__)

# Mobile clients wrap callable payloads as {"data": {...}}; older builds
# wrapped them twice.
MAX_UNWRAP_DEPTH = 2


def unwrap_payload(body: Any) -> Any:
    """Strip {"data": {...}} envelopes from a callable request body."""
    for _ in range(MAX_UNWRAP_DEPTH):
        if isinstance(body, dict) and set(body) == {"data"} and isinstance(
            body["data"], dict
        ):
            body = body["data"]
        else:
            break
    return body


def error_response(error: ServiceError) -> JsonResponse:
    """Render a ServiceError as a structured JSON error."""
    return JsonResponse(error.to_dict(), status=error.http_status)


def parse_request(request: HttpRequest, schema: type[BaseModel]) -> BaseModel:
    """
    Decode, unwrap and validate a JSON request body.

    Raises:
        InvalidArgument: If the body is not JSON or fails schema validation.
    """
    try:
        body = json.loads(request.body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidArgument("Invalid JSON in request body") from e

    try:
        return schema.model_validate(unwrap_payload(body))
    except PydanticValidationError as e:
        details = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        raise InvalidArgument("Request validation failed", details=details) from e


def callable_endpoint(
    schema: type[BaseModel],
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator for JSON RPC-style endpoints called by the mobile app.

    Parses the body into `schema` (unwrapping envelopes once, here) and
    passes the typed request to the view. ServiceErrors raised by the view
    become structured JSON errors with their HTTP status.

    Usage:
        @csrf_exempt
        @require_POST
        @callable_endpoint(CancelOrderRequest)
        def cancel(request, payload):
            ...
    """

    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
            try:
                payload = parse_request(request, schema)
                return view_func(request, payload, *args, **kwargs)
            except ServiceError as e:
                logger.info(
                    "%s rejected: %s (%s)", view_func.__name__, e.message, e.code
                )
                return error_response(e)

        return wrapper

    return decorator
