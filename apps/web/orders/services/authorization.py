"""
Authorization orchestrator - checkout entry points.

Handles:
1. Resolving merchant credentials
2. Best-effort POS customer lookup
3. Authorizing the payment
4. Delayed capture: persisting AUTHORIZED + a capture task, no POS order yet
5. Immediate settlement: creating the POS order now and persisting SUBMITTED
6. Externally-settled orders: POS order only, no payment calls

A POS order is never created for an order a customer can still cancel,
so a cancelled order never shows up at the merchant.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from siplocal_schemas import (
    MerchantCredentials,
    PaymentAuthorization,
    PaymentMetadata,
    POSOrder,
    POSOrderItem,
    POSPickupDetails,
    POSProvider,
)
from siplocal_schemas import PaymentMethod as PaymentMethodSchema

from apps.web.core.exceptions import (
    InvalidArgument,
    POSOrderCreationFailed,
    ProviderDeclined,
)
from apps.web.merchants.services import resolve_credentials
from apps.web.orders.models import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    new_transaction_id,
)
from apps.web.orders.serializers import (
    AuthorizeOrderRequest,
    AuthorizeOrderResponse,
    OrderDetails,
    SubmitExternalOrderRequest,
    SubmitExternalOrderResponse,
)
from apps.web.orders.services.capture import schedule_capture
from apps.web.payments.exceptions import PaymentError
from apps.web.payments.services import authorize_payment
from apps.web.pos.exceptions import POSError
from apps.web.pos.services.order_submission import (
    find_customer,
    submit_order_to_pos,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Entry points
# =============================================================================


def authorize_order(request: AuthorizeOrderRequest) -> AuthorizeOrderResponse:
    """
    Authorize payment for a new order.

    Args:
        request: Validated checkout request.

    Returns:
        The new order's transaction ID, status and payment reference.

    Raises:
        CredentialsNotFound: If the merchant has no usable credentials.
        InvalidArgument: If the payment method is not available for the merchant.
        ProviderDeclined: If the payment was declined. No order is written.
        POSOrderCreationFailed: If the payment settled but the POS order
            could not be created. A FAILED order is persisted.
    """
    credentials = resolve_credentials(request.merchant_id)
    method = PaymentMethod(request.payment_method)
    if method == PaymentMethod.CARD and credentials.provider not in (
        POSProvider.SQUARE,
        POSProvider.MOCK,
    ):
        raise InvalidArgument(
            "Card payments are only available for Square merchants",
            details={"posProvider": credentials.provider.value},
        )

    transaction_id = new_transaction_id()
    customer_ref = None
    if request.customer_name and request.customer_email:
        customer_ref = find_customer(
            credentials, request.customer_name, str(request.customer_email)
        )

    metadata = PaymentMetadata(
        transaction_id=transaction_id,
        merchant_id=request.merchant_id,
        currency=settings.DEFAULT_CURRENCY,
        location_id=credentials.location_id,
        customer_ref=customer_ref,
        customer_name=request.customer_name,
        customer_email=str(request.customer_email or ""),
        user_id=request.user_id,
        description=f"Order from {request.merchant_name or 'Coffee Shop'}",
    )

    try:
        authorization = authorize_payment(
            PaymentMethodSchema(method.value),
            credentials,
            request.amount,
            request.payment_token,
            metadata,
        )
    except PaymentError as e:
        logger.info(
            "Payment declined for merchant %s (%s): code=%s",
            request.merchant_id,
            method,
            e.code,
        )
        raise ProviderDeclined(
            e.user_message,
            reason=e.decline_reason.value,
            details={"code": e.code} if e.code else None,
        ) from e

    if not authorization.settled:
        with transaction.atomic():
            order = _persist_order(
                request,
                credentials,
                transaction_id,
                payment_method=method,
                status=OrderStatus.AUTHORIZED,
                payment_status=PaymentStatus.AUTHORIZED,
                provider_ref=authorization.provider_ref,
                customer_ref=customer_ref,
                receipt_url=authorization.receipt_url,
            )
            task = schedule_capture(order)

        logger.info(
            "Order %s authorized (%s), capture due at %s",
            transaction_id,
            authorization.provider_ref,
            task.scheduled_for.isoformat(),
        )
        return AuthorizeOrderResponse(
            transaction_id=transaction_id,
            status=OrderStatus.AUTHORIZED,
            provider_ref=authorization.provider_ref,
        )

    # Settled at authorization time: nothing to capture, submit now
    logger.info(
        "Payment %s for order %s settled immediately, skipping capture",
        authorization.provider_ref,
        transaction_id,
    )
    pos_order_id = _submit_settled_order(
        request,
        credentials,
        transaction_id,
        method,
        authorization,
        customer_ref,
    )
    return AuthorizeOrderResponse(
        transaction_id=transaction_id,
        status=OrderStatus.SUBMITTED,
        provider_ref=authorization.provider_ref,
        pos_order_id=pos_order_id,
    )


def submit_external_order(
    request: SubmitExternalOrderRequest,
) -> SubmitExternalOrderResponse:
    """
    Create an order whose payment was settled outside this service.

    No authorization or capture happens and no capture task is written.

    Raises:
        CredentialsNotFound: If the merchant has no usable credentials.
        POSOrderCreationFailed: If the POS order could not be created. A
            FAILED order is persisted.
    """
    credentials = resolve_credentials(request.merchant_id)
    transaction_id = new_transaction_id()
    pos_order = pos_order_from_request(request, transaction_id, customer_ref=None)

    try:
        pos_order_id, payment_id = submit_order_to_pos(
            credentials, pos_order, request.amount
        )
    except POSError as e:
        _persist_pos_failure(
            request,
            credentials,
            transaction_id,
            PaymentMethod.EXTERNAL,
            PaymentStatus.EXTERNAL,
            provider_ref="",
            customer_ref=None,
            error=e,
        )
        raise POSOrderCreationFailed(
            "Order creation failed", transaction_id=transaction_id
        ) from e

    with transaction.atomic():
        _persist_order(
            request,
            credentials,
            transaction_id,
            payment_method=PaymentMethod.EXTERNAL,
            status=OrderStatus.SUBMITTED,
            payment_status=PaymentStatus.EXTERNAL,
            provider_ref=payment_id or "",
            pos_order_id=pos_order_id,
        )

    logger.info(
        "External order %s submitted for merchant %s: pos_order_id=%s",
        transaction_id,
        request.merchant_id,
        pos_order_id,
    )
    return SubmitExternalOrderResponse(
        transaction_id=transaction_id,
        pos_order_id=pos_order_id,
        status=OrderStatus.SUBMITTED,
    )


# =============================================================================
# Helpers
# =============================================================================


def pos_order_from_request(
    request: OrderDetails, transaction_id: str, customer_ref: str | None
) -> POSOrder:
    """Build the POS order straight from a checkout request."""
    return POSOrder(
        reference_id=transaction_id,
        items=[
            POSOrderItem(
                catalog_item_id=item.id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.price,
                note=item.customizations,
            )
            for item in request.items
        ],
        pickup=POSPickupDetails(
            recipient_name=request.customer_name or "Customer",
            pickup_at=request.pickup_time,
        ),
        customer_ref=customer_ref,
        currency=settings.DEFAULT_CURRENCY,
    )


def _submit_settled_order(
    request: AuthorizeOrderRequest,
    credentials: MerchantCredentials,
    transaction_id: str,
    method: PaymentMethod,
    authorization: PaymentAuthorization,
    customer_ref: str | None,
) -> str:
    pos_order = pos_order_from_request(request, transaction_id, customer_ref)
    try:
        pos_order_id, _ = submit_order_to_pos(credentials, pos_order, request.amount)
    except POSError as e:
        _persist_pos_failure(
            request,
            credentials,
            transaction_id,
            method,
            PaymentStatus.CAPTURED,
            provider_ref=authorization.provider_ref,
            customer_ref=customer_ref,
            error=e,
        )
        raise POSOrderCreationFailed(
            "Payment succeeded but order creation failed",
            transaction_id=transaction_id,
        ) from e

    with transaction.atomic():
        _persist_order(
            request,
            credentials,
            transaction_id,
            payment_method=method,
            status=OrderStatus.SUBMITTED,
            payment_status=PaymentStatus.CAPTURED,
            provider_ref=authorization.provider_ref,
            customer_ref=customer_ref,
            pos_order_id=pos_order_id,
            receipt_url=authorization.receipt_url,
        )
    return pos_order_id


def _persist_pos_failure(
    request: OrderDetails,
    credentials: MerchantCredentials,
    transaction_id: str,
    method: PaymentMethod,
    payment_status: PaymentStatus,
    provider_ref: str,
    customer_ref: str | None,
    error: POSError,
) -> None:
    logger.error(
        "POS order creation failed for %s (payment %s, %s); "
        "requires manual reconciliation: %s",
        transaction_id,
        provider_ref or "external",
        payment_status,
        error,
    )
    with transaction.atomic():
        _persist_order(
            request,
            credentials,
            transaction_id,
            payment_method=method,
            status=OrderStatus.FAILED,
            payment_status=payment_status,
            provider_ref=provider_ref,
            customer_ref=customer_ref,
            error=f"POS order creation failed: {error}",
        )


def _persist_order(
    request: OrderDetails,
    credentials: MerchantCredentials,
    transaction_id: str,
    *,
    payment_method: PaymentMethod,
    status: OrderStatus,
    payment_status: PaymentStatus,
    provider_ref: str = "",
    customer_ref: str | None = None,
    pos_order_id: str | None = None,
    receipt_url: str | None = None,
    error: str = "",
) -> Order:
    """Write the Order and its items. Call inside a transaction."""
    order = Order.objects.create(
        transaction_id=transaction_id,
        merchant_id=request.merchant_id,
        merchant_name=request.merchant_name,
        pos_provider=credentials.provider.value,
        location_id=credentials.location_id,
        pos_order_id=pos_order_id,
        amount=request.amount,
        currency=settings.DEFAULT_CURRENCY,
        customer_name=request.customer_name,
        customer_email=str(request.customer_email or ""),
        customer_ref=customer_ref or "",
        user_id=request.user_id,
        pickup_time=request.pickup_time,
        payment_method=payment_method,
        payment_provider_ref=provider_ref,
        payment_status=payment_status,
        receipt_url=receipt_url or "",
        status=status,
        error=error,
        submitted_at=timezone.now() if pos_order_id else None,
    )
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                item_id=item.id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.price,
                customizations=item.customizations,
                selected_size_id=item.selected_size_id or "",
                selected_modifier_ids=item.selected_modifier_ids,
            )
            for item in request.items
        ]
    )
    return order
