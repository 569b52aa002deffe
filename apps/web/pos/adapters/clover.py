"""Clover POS adapter - integration with Clover's merchant platform."""

import logging
from typing import Any

import httpx
from siplocal_schemas import (
    OrderStatus,
    POSExternalPayment,
    POSLocation,
    POSOrder,
    POSOrderResult,
    POSProvider,
    POSSession,
)

from apps.web.core.http import ProviderHTTPClient, ProviderRequestError
from apps.web.pos.exceptions import (
    POSAPIError,
    POSOrderError,
    pos_error_from_request,
)

logger = logging.getLogger(__name__)


class CloverAdapter:
    """
    Clover POS adapter implementing the POSAdapter protocol.

    Integrates with Clover's merchant platform for:
    - Order creation (atomic order with line items)
    - Externally-settled payments (recorded as an external tender)

    Clover has no separate location concept: the Clover merchant ID is the
    location, so the stored credential's location ID holds it. Clover has
    no customer directory lookup in this integration.

    Note: Clover access tokens don't expire.

    API Reference: https://docs.clover.com/reference
    """

    SANDBOX_BASE_URL = "https://sandbox.dev.clover.com"
    PROD_BASE_URL = "https://api.clover.com"

    # Clover rate limits vary by endpoint, generally lenient
    REQUESTS_PER_SECOND = 10.0

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        sandbox: bool = False,
        clover_merchant_id: str | None = None,
    ) -> None:
        """
        Initialize the Clover adapter.

        Args:
            http_client: Optional HTTP client for dependency injection (testing).
            sandbox: If True, use Clover sandbox environment.
            clover_merchant_id: Clover merchant to report as the only
                location from list_locations().
        """
        self._sandbox = sandbox
        self._base_url = self.SANDBOX_BASE_URL if sandbox else self.PROD_BASE_URL
        self._clover_merchant_id = clover_merchant_id
        self._http = ProviderHTTPClient(
            provider="clover",
            base_url=self._base_url,
            http_client=http_client,
            requests_per_second=self.REQUESTS_PER_SECOND,
        )

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        await self._http.close()

    @property
    def provider(self) -> POSProvider:
        """The POS provider this adapter connects to."""
        return POSProvider.CLOVER

    async def _request(
        self,
        method: str,
        path: str,
        session: POSSession,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method, path, session.access_token, **kwargs
            )
        except ProviderRequestError as e:
            raise pos_error_from_request(e) from e
        data: dict[str, Any] = response.json()
        return data

    # =========================================================================
    # Merchant Lookups
    # =========================================================================

    async def list_locations(self, session: POSSession) -> list[POSLocation]:
        """
        Return the Clover merchant as the single location.

        Raises:
            POSAPIError: If the adapter was built without a Clover merchant
                ID, or the API request fails.
        """
        if not self._clover_merchant_id:
            raise POSAPIError(
                "Clover merchant ID is required to look up locations",
                provider="clover",
            )

        data = await self._request(
            "GET", f"/v3/merchants/{self._clover_merchant_id}", session
        )
        return [
            POSLocation(
                external_id=data.get("id", self._clover_merchant_id),
                name=data.get("name", ""),
            )
        ]

    async def find_or_create_customer(
        self,
        session: POSSession,  # noqa: ARG002
        name: str,  # noqa: ARG002
        email: str,  # noqa: ARG002
    ) -> str | None:
        """Clover orders are not linked to a customer directory entry."""
        return None

    # =========================================================================
    # Order Operations
    # =========================================================================

    async def create_order(
        self,
        session: POSSession,
        location_id: str,
        order: POSOrder,
        idempotency_key: str,
    ) -> POSOrderResult:
        """
        Create an open order in Clover.

        Uses the atomic order endpoint so the order and its line items are
        created in one request.

        Args:
            session: Authenticated session.
            location_id: Clover merchant ID.
            order: Order to submit.
            idempotency_key: Fresh idempotency key.

        Returns:
            Result with the Clover order ID.

        Raises:
            POSOrderError: If Clover rejects the order.
            POSAPIError: If the API request fails.
        """
        line_items = []
        for item in order.items:
            line_item: dict[str, Any] = {
                "name": item.name,
                "price": item.unit_price,
                # Clover quantities are in thousandths of a unit
                "unitQty": item.quantity * 1000,
            }
            if item.catalog_item_id:
                line_item["item"] = {"id": item.catalog_item_id}
            if item.note:
                line_item["note"] = item.note
            line_items.append(line_item)

        body = {
            "orderCart": {
                "title": order.reference_id,
                "note": f"{order.pickup.recipient_name}: {order.pickup.note}",
                "currency": order.currency,
                "lineItems": line_items,
            }
        }

        try:
            data = await self._request(
                "POST",
                f"/v3/merchants/{location_id}/atomic_order/orders",
                session,
                json=body,
                headers={"Idempotency-Key": idempotency_key},
            )
        except POSAPIError as e:
            raise POSOrderError(
                f"Clover rejected order {order.reference_id}: {e.message}",
                provider="clover",
                order_id=order.reference_id,
            ) from e

        external_id = data.get("id")
        if not external_id:
            raise POSOrderError(
                "No order ID in Clover response",
                provider="clover",
                order_id=order.reference_id,
            )

        logger.info("Created Clover order %s for %s", external_id, order.reference_id)
        return POSOrderResult(external_id=external_id, status=OrderStatus.SUBMITTED)

    async def record_external_payment(
        self,
        session: POSSession,
        location_id: str,
        external_order_id: str,
        amount: int,
        currency: str,  # noqa: ARG002
        source: str,
        idempotency_key: str,
    ) -> POSExternalPayment:
        """
        Record an external tender payment against a Clover order.

        Raises:
            POSAPIError: If the API request fails.
        """
        data = await self._request(
            "POST",
            f"/v3/merchants/{location_id}/orders/{external_order_id}/payments",
            session,
            json={
                "amount": amount,
                "externalPaymentId": idempotency_key,
                "tender": {"label": source},
            },
            headers={"Idempotency-Key": idempotency_key},
        )
        return POSExternalPayment(
            external_id=data.get("id", ""),
            order_id=external_order_id,
            amount=amount,
        )
