"""
Payment services - sync entry points over the async payment adapters.

Each call builds an adapter from settings and the merchant's credentials,
runs one provider operation, and closes the adapter.
"""

import asyncio
import logging

from django.conf import settings

from siplocal_schemas import (
    CancelResult,
    CaptureResult,
    MerchantCredentials,
    PaymentAuthorization,
    PaymentMetadata,
    PaymentMethod,
)

from apps.web.payments.adapters import PaymentAdapter, get_payment_adapter

logger = logging.getLogger(__name__)


def payment_adapter_for(
    method: PaymentMethod | str, credentials: MerchantCredentials
) -> PaymentAdapter:
    """Build the payment adapter for a method using configured keys."""
    return get_payment_adapter(
        method,
        credentials,
        stripe_api_key=settings.STRIPE_SECRET_KEY,
        square_sandbox=settings.SQUARE_ENVIRONMENT == "sandbox",
    )


def authorize_payment(
    method: PaymentMethod | str,
    credentials: MerchantCredentials,
    amount: int,
    token: str,
    metadata: PaymentMetadata,
) -> PaymentAuthorization:
    """
    Authorize a payment.

    Raises:
        PaymentError: If the processor declines or the call fails.
    """

    async def _run() -> PaymentAuthorization:
        adapter = payment_adapter_for(method, credentials)
        try:
            return await adapter.authorize(amount, token, metadata)
        finally:
            await adapter.close()

    return asyncio.run(_run())


def capture_payment(
    method: PaymentMethod | str,
    credentials: MerchantCredentials,
    provider_ref: str,
) -> CaptureResult:
    """
    Capture an authorized payment.

    Raises:
        PaymentError: If the capture fails.
    """

    async def _run() -> CaptureResult:
        adapter = payment_adapter_for(method, credentials)
        try:
            return await adapter.capture(provider_ref)
        finally:
            await adapter.close()

    return asyncio.run(_run())


def cancel_payment(
    method: PaymentMethod | str,
    credentials: MerchantCredentials,
    provider_ref: str,
) -> CancelResult:
    """
    Void an uncaptured authorization.

    Raises:
        PaymentError: If the processor refuses to void.
    """

    async def _run() -> CancelResult:
        adapter = payment_adapter_for(method, credentials)
        try:
            return await adapter.cancel(provider_ref)
        finally:
            await adapter.close()

    return asyncio.run(_run())
