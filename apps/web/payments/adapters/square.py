"""Square Payments adapter - primary card processor."""

import logging
import uuid
from typing import Any

import httpx
from siplocal_schemas import (
    CancelResult,
    CaptureResult,
    PaymentAuthorization,
    PaymentMetadata,
    PaymentProvider,
    PaymentStatus,
)

from apps.web.core.http import ProviderHTTPClient, ProviderRequestError
from apps.web.payments.exceptions import PaymentError

logger = logging.getLogger(__name__)

SQUARE_API_VERSION = "2024-01-18"

# Square payment status -> our sub-state
PAYMENT_STATUS_MAP = {
    "APPROVED": PaymentStatus.AUTHORIZED,
    "PENDING": PaymentStatus.AUTHORIZED,
    "COMPLETED": PaymentStatus.CAPTURED,
    "CANCELED": PaymentStatus.CANCELLED,
    "FAILED": PaymentStatus.FAILED,
}


class SquarePaymentAdapter:
    """
    Square Payments adapter implementing the PaymentAdapter protocol.

    Payments are taken on behalf of the merchant with the merchant's own
    access token, so the charge lands in the merchant's Square account.

    API Reference: https://developer.squareup.com/reference/square/payments-api
    """

    SANDBOX_BASE_URL = "https://connect.squareupsandbox.com"
    PROD_BASE_URL = "https://connect.squareup.com"

    def __init__(
        self,
        access_token: str,
        location_id: str = "",
        http_client: httpx.AsyncClient | None = None,
        sandbox: bool = False,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            access_token: Merchant's Square access token.
            location_id: Square location the payment is taken at.
            http_client: Optional HTTP client for dependency injection (testing).
            sandbox: If True, use Square sandbox environment.
        """
        self._access_token = access_token
        self._location_id = location_id
        self._http = ProviderHTTPClient(
            provider="square",
            base_url=self.SANDBOX_BASE_URL if sandbox else self.PROD_BASE_URL,
            http_client=http_client,
            default_headers={"Square-Version": SQUARE_API_VERSION},
        )

    async def close(self) -> None:
        await self._http.close()

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.SQUARE

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._http.request(
                "POST", path, self._access_token, json=body
            )
        except ProviderRequestError as e:
            raise _payment_error(e) from e
        data: dict[str, Any] = response.json()
        return data

    async def authorize(
        self, amount: int, token: str, metadata: PaymentMetadata
    ) -> PaymentAuthorization:
        """
        Create a Square payment with autocomplete disabled.

        Square may still complete the payment (status COMPLETED) for some
        card types; that is reported as settled.
        """
        body: dict[str, Any] = {
            "source_id": token,
            "idempotency_key": str(uuid.uuid4()),
            "amount_money": {"amount": amount, "currency": metadata.currency},
            "autocomplete": False,
            "reference_id": metadata.transaction_id,
        }
        if metadata.location_id or self._location_id:
            body["location_id"] = metadata.location_id or self._location_id
        if metadata.customer_ref:
            body["customer_id"] = metadata.customer_ref
        if metadata.customer_email:
            body["buyer_email_address"] = metadata.customer_email
        if metadata.description:
            body["note"] = metadata.description

        data = await self._post("/v2/payments", body)
        payment = data.get("payment", {})
        status = payment.get("status", "")
        if status not in ("APPROVED", "COMPLETED", "PENDING"):
            raise PaymentError(
                f"Square payment not approved (status={status})",
                code=status or None,
                provider="square",
            )

        logger.info(
            "Square payment %s authorized for %s (status=%s)",
            payment.get("id"),
            metadata.transaction_id,
            status,
        )
        return PaymentAuthorization(
            provider_ref=payment["id"],
            settled=status == "COMPLETED",
            status=PAYMENT_STATUS_MAP.get(status, PaymentStatus.AUTHORIZED),
            receipt_url=payment.get("receipt_url"),
        )

    async def capture(self, provider_ref: str) -> CaptureResult:
        data = await self._post(f"/v2/payments/{provider_ref}/complete", {})
        payment = data.get("payment", {})
        return CaptureResult(
            captured=payment.get("status") == "COMPLETED",
            status=PAYMENT_STATUS_MAP.get(
                payment.get("status", ""), PaymentStatus.CAPTURED
            ),
            receipt_url=payment.get("receipt_url"),
        )

    async def cancel(self, provider_ref: str) -> CancelResult:
        data = await self._post(f"/v2/payments/{provider_ref}/cancel", {})
        payment = data.get("payment", {})
        return CancelResult(cancelled=payment.get("status") == "CANCELED")


def _payment_error(error: ProviderRequestError) -> PaymentError:
    """Build a PaymentError from Square's `errors` array."""
    errors = error.json().get("errors") or []
    first = errors[0] if errors else {}
    code = first.get("code")
    detail = first.get("detail") or error.message
    return PaymentError(
        f"Square payment failed: {detail}", code=code, provider="square"
    )
