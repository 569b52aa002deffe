"""
Stripe adapters - alternate card (PaymentIntents) and wallet (Charges).

The stripe SDK is synchronous; calls run in a worker thread so the
adapters fit the async PaymentAdapter protocol. The API key is passed
per request instead of being set on the stripe module.
"""

import asyncio
import logging
import uuid
from typing import Any

import stripe
from siplocal_schemas import (
    CancelResult,
    CaptureResult,
    PaymentAuthorization,
    PaymentMetadata,
    PaymentProvider,
    PaymentStatus,
)

from apps.web.payments.exceptions import PaymentError

logger = logging.getLogger(__name__)


def _stripe_metadata(metadata: PaymentMetadata, **extra: str) -> dict[str, str]:
    return {
        "merchantId": metadata.merchant_id,
        "transactionId": metadata.transaction_id,
        "userId": metadata.user_id,
        "customerEmail": metadata.customer_email,
        "customerName": metadata.customer_name,
        **extra,
    }


def _payment_error(e: stripe.StripeError) -> PaymentError:
    return PaymentError(
        message=str(e.user_message or e),
        code=getattr(e, "code", None),
        provider="stripe",
    )


class StripePaymentIntentAdapter:
    """
    Alternate card payments via Stripe PaymentIntents with manual capture.

    The client collects a payment method; the intent is confirmed server
    side so the authorization happens in this call.
    """

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    async def close(self) -> None:
        """Nothing to release."""

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.STRIPE

    async def _call(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, api_key=self._api_key, **kwargs)
        except stripe.StripeError as e:
            raise _payment_error(e) from e

    async def authorize(
        self, amount: int, token: str, metadata: PaymentMetadata
    ) -> PaymentAuthorization:
        intent = await self._call(
            stripe.PaymentIntent.create,
            amount=amount,
            currency=metadata.currency.lower(),
            capture_method="manual",
            confirm=True,
            payment_method=token,
            automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
            description=metadata.description or None,
            receipt_email=metadata.customer_email or None,
            metadata=_stripe_metadata(metadata),
            idempotency_key=str(uuid.uuid4()),
        )

        if intent.status not in ("requires_capture", "succeeded"):
            raise PaymentError(
                f"PaymentIntent not authorized (status={intent.status})",
                code=intent.status,
                provider="stripe",
            )

        settled = intent.status == "succeeded"
        logger.info(
            "Stripe PaymentIntent %s authorized for %s (status=%s)",
            intent.id,
            metadata.transaction_id,
            intent.status,
        )
        return PaymentAuthorization(
            provider_ref=intent.id,
            settled=settled,
            status=PaymentStatus.CAPTURED if settled else PaymentStatus.AUTHORIZED,
        )

    async def capture(self, provider_ref: str) -> CaptureResult:
        intent = await self._call(stripe.PaymentIntent.capture, provider_ref)
        return CaptureResult(captured=intent.status == "succeeded")

    async def cancel(self, provider_ref: str) -> CancelResult:
        intent = await self._call(stripe.PaymentIntent.cancel, provider_ref)
        return CancelResult(cancelled=intent.status == "canceled")


class StripeChargeAdapter:
    """
    Tokenized wallet (Apple Pay) payments via Stripe Charges.

    Charges are created with capture=False. Wallet tokens occasionally
    come back captured anyway, which is reported as settled.
    """

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    async def close(self) -> None:
        """Nothing to release."""

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.STRIPE

    async def _call(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, api_key=self._api_key, **kwargs)
        except stripe.StripeError as e:
            raise _payment_error(e) from e

    async def authorize(
        self, amount: int, token: str, metadata: PaymentMetadata
    ) -> PaymentAuthorization:
        charge = await self._call(
            stripe.Charge.create,
            amount=amount,
            currency=metadata.currency.lower(),
            source=token,
            capture=False,
            description=metadata.description or None,
            receipt_email=metadata.customer_email or None,
            metadata=_stripe_metadata(metadata, paymentMethod="apple_pay"),
            idempotency_key=str(uuid.uuid4()),
        )

        if charge.status == "failed":
            raise PaymentError(
                charge.failure_message or "Charge failed",
                code=charge.failure_code,
                provider="stripe",
            )

        settled = bool(charge.captured)
        logger.info(
            "Stripe charge %s authorized for %s (captured=%s)",
            charge.id,
            metadata.transaction_id,
            settled,
        )
        return PaymentAuthorization(
            provider_ref=charge.id,
            settled=settled,
            status=PaymentStatus.CAPTURED if settled else PaymentStatus.AUTHORIZED,
            receipt_url=charge.receipt_url,
        )

    async def capture(self, provider_ref: str) -> CaptureResult:
        charge = await self._call(stripe.Charge.capture, provider_ref)
        return CaptureResult(
            captured=bool(charge.captured), receipt_url=charge.receipt_url
        )

    async def cancel(self, provider_ref: str) -> CancelResult:
        # Refunding an uncaptured charge releases the hold
        refund = await self._call(stripe.Refund.create, charge=provider_ref)
        return CancelResult(cancelled=refund.status in ("succeeded", "pending"))
