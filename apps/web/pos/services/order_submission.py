"""
POS order submission service - pushes orders into the merchant's POS.

Handles:
1. Converting an internal Order to POSOrder format
2. Creating the POS order with a fresh idempotency key
3. Linking the settled payment to the POS order (external payment)
4. Best-effort customer and location lookups

Adapters are async; each entry point here runs one event loop with
asyncio.run() and builds and closes its adapter inside that loop. No ORM
access happens inside the loop.
"""

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING

from django.conf import settings

from siplocal_schemas import (
    MerchantCredentials,
    POSLocation,
    POSOrder,
    POSOrderItem,
    POSPickupDetails,
    POSProvider,
    POSSession,
)

from apps.web.core.exceptions import ExternalPaymentLinkFailed
from apps.web.pos.adapters import POSAdapter, get_adapter
from apps.web.pos.exceptions import POSError

if TYPE_CHECKING:
    from apps.web.orders.models import Order


logger = logging.getLogger(__name__)

# Shown as the tender source in the merchant's POS
EXTERNAL_PAYMENT_SOURCE = "SipLocal App"


def pos_adapter_for(
    provider: POSProvider | str, merchant_id: str | None = None
) -> POSAdapter:
    """
    Build the POS adapter for a provider using configured environments.

    Clover addresses every call by its merchant ID, so Clover adapters are
    built with the merchant they act for.
    """
    if provider == POSProvider.SQUARE:
        return get_adapter(provider, sandbox=settings.SQUARE_ENVIRONMENT == "sandbox")
    if provider == POSProvider.CLOVER:
        return get_adapter(
            provider,
            sandbox=settings.CLOVER_ENVIRONMENT == "sandbox",
            clover_merchant_id=merchant_id,
        )
    return get_adapter(provider)


def build_pos_order(order: "Order") -> POSOrder:
    """
    Convert internal Order model to POSOrder format.

    Args:
        order: Django Order model; items are read from the database.

    Returns:
        POSOrder ready for submission to POS adapter.
    """
    items = [
        POSOrderItem(
            catalog_item_id=item.item_id,
            name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            note=item.customizations,
        )
        for item in order.items.all()
    ]

    return POSOrder(
        reference_id=order.transaction_id,
        items=items,
        pickup=POSPickupDetails(
            recipient_name=order.customer_name or "Customer",
            pickup_at=order.pickup_time,
        ),
        customer_ref=order.customer_ref or None,
        currency=order.currency,
    )


async def _submit_order_async(
    credentials: MerchantCredentials,
    pos_order: POSOrder,
    amount: int,
) -> tuple[str, str | None]:
    """
    Async implementation of order submission.

    Returns:
        Tuple of (pos_order_id, external_payment_id)
    """
    adapter = pos_adapter_for(credentials.provider, credentials.merchant_id)
    session = credentials.session
    try:
        result = await adapter.create_order(
            session,
            credentials.location_id,
            pos_order,
            idempotency_key=str(uuid.uuid4()),
        )

        payment_id = None
        try:
            payment_id = await _link_payment(
                adapter, credentials, result.external_id, pos_order.currency, amount
            )
        except ExternalPaymentLinkFailed as e:
            logger.error("%s for %s: %s", e.message, pos_order.reference_id, e.details)

        return result.external_id, payment_id
    finally:
        await adapter.close()


async def _link_payment(
    adapter: POSAdapter,
    credentials: MerchantCredentials,
    pos_order_id: str,
    currency: str,
    amount: int,
) -> str:
    """
    Record the settled amount against a POS order.

    Raises:
        ExternalPaymentLinkFailed: If the POS rejected the payment.
    """
    try:
        payment = await adapter.record_external_payment(
            credentials.session,
            credentials.location_id,
            pos_order_id,
            amount=amount,
            currency=currency,
            source=EXTERNAL_PAYMENT_SOURCE,
            idempotency_key=str(uuid.uuid4()),
        )
    except POSError as e:
        raise ExternalPaymentLinkFailed(
            f"External payment not linked to POS order {pos_order_id}",
            details=str(e),
        ) from e
    return payment.external_id


def submit_order_to_pos(
    credentials: MerchantCredentials,
    pos_order: POSOrder,
    amount: int,
) -> tuple[str, str | None]:
    """
    Create the POS order and link its payment.

    Every order is paid by the time it reaches the POS, so the settled
    amount is always recorded against it as an external payment. A failure
    to record the payment is logged and does not undo the POS order.

    Args:
        credentials: Resolved merchant credentials.
        pos_order: Order to create.
        amount: Settled amount in minor units, for the external payment.

    Returns:
        Tuple of (pos_order_id, external_payment_id or None).

    Raises:
        POSError: If the POS order could not be created.
    """
    pos_order_id, payment_id = asyncio.run(
        _submit_order_async(credentials, pos_order, amount)
    )
    logger.info(
        "Order %s submitted to %s: pos_order_id=%s",
        pos_order.reference_id,
        credentials.provider.value,
        pos_order_id,
    )
    return pos_order_id, payment_id


def fetch_locations(
    provider: POSProvider | str, access_token: str, merchant_id: str
) -> list[POSLocation]:
    """
    List a merchant's POS locations.

    Raises:
        POSError: If the provider call fails.
    """

    async def _run() -> list[POSLocation]:
        adapter = pos_adapter_for(provider, merchant_id)
        try:
            return await adapter.list_locations(
                POSSession(provider=POSProvider(provider), access_token=access_token)
            )
        finally:
            await adapter.close()

    return asyncio.run(_run())


def find_customer(
    credentials: MerchantCredentials, name: str, email: str
) -> str | None:
    """
    Resolve or create the POS customer for an email.

    Best effort: any provider failure is logged and the order proceeds as
    a guest checkout.
    """

    async def _run() -> str | None:
        adapter = pos_adapter_for(credentials.provider, credentials.merchant_id)
        try:
            return await adapter.find_or_create_customer(
                credentials.session, name, email
            )
        finally:
            await adapter.close()

    try:
        return asyncio.run(_run())
    except POSError as e:
        logger.warning(
            "Customer lookup failed for merchant %s, continuing as guest: %s",
            credentials.merchant_id,
            e,
        )
        return None
