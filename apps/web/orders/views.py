"""
Order API views - callable endpoints for the mobile app.

Every POST endpoint takes a JSON body (optionally wrapped in {"data": ...})
validated by the schema passed to callable_endpoint. Service errors are
rendered by the decorator as {"error": {...}} with their HTTP status.
"""

from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from apps.web.core.decorators import callable_endpoint, error_response
from apps.web.core.exceptions import OrderNotFound
from apps.web.orders.models import Order
from apps.web.orders.serializers import (
    AuthorizeOrderRequest,
    OrderActionResponse,
    OrderItemResponse,
    OrderStatusResponse,
    SubmitExternalOrderRequest,
    TransactionRequest,
)
from apps.web.orders.services import (
    authorize_order,
    cancel_order,
    capture_order,
    submit_external_order,
)


def _json(schema: Any, status: int = 200) -> JsonResponse:
    return JsonResponse(
        schema.model_dump(mode="json", by_alias=True, exclude_none=True),
        status=status,
    )


@csrf_exempt
@require_POST
@callable_endpoint(AuthorizeOrderRequest)
def authorize(request: HttpRequest, payload: AuthorizeOrderRequest) -> JsonResponse:
    """
    Authorize payment for a new order.

    POST /api/orders/authorize
    """
    return _json(authorize_order(payload))


@csrf_exempt
@require_POST
@callable_endpoint(TransactionRequest)
def cancel(request: HttpRequest, payload: TransactionRequest) -> JsonResponse:
    """
    Cancel an order while it is still AUTHORIZED.

    POST /api/orders/cancel
    """
    order = cancel_order(payload.transaction_id)
    return _json(OrderActionResponse(success=True, status=order.status))


@csrf_exempt
@require_POST
@callable_endpoint(TransactionRequest)
def capture(request: HttpRequest, payload: TransactionRequest) -> JsonResponse:
    """
    Capture an order now and submit it to the POS.

    POST /api/orders/capture
    """
    order = capture_order(payload.transaction_id)
    return _json(
        OrderActionResponse(
            success=True, status=order.status, pos_order_id=order.pos_order_id
        )
    )


@csrf_exempt
@require_POST
@callable_endpoint(SubmitExternalOrderRequest)
def submit_external(
    request: HttpRequest, payload: SubmitExternalOrderRequest
) -> JsonResponse:
    """
    Submit an order paid outside this service.

    POST /api/orders/submit-external
    """
    return _json(submit_external_order(payload))


@require_GET
def order_detail(request: HttpRequest, transaction_id: str) -> JsonResponse:
    """
    Get an order's current status.

    GET /api/orders/<transaction_id>
    """
    try:
        order = Order.objects.prefetch_related("items").get(pk=transaction_id)
    except Order.DoesNotExist:
        return error_response(OrderNotFound(f"Order {transaction_id} not found"))

    response = OrderStatusResponse(
        transaction_id=order.transaction_id,
        merchant_id=order.merchant_id,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        pos_order_id=order.pos_order_id,
        amount=order.amount,
        currency=order.currency,
        receipt_url=order.receipt_url,
        items=[
            OrderItemResponse(
                name=item.name,
                quantity=item.quantity,
                price=item.unit_price,
                customizations=item.customizations,
            )
            for item in order.items.all()
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )
    return _json(response)
