"""Square POS adapter - integration with Square's commerce platform."""

import base64
import hashlib
import hmac
import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError
from siplocal_schemas import (
    FulfillmentUpdatedEvent,
    OrderCreatedEvent,
    OrderStatus,
    OrderUpdatedEvent,
    POSExternalPayment,
    POSLocation,
    POSOrder,
    POSOrderResult,
    POSProvider,
    POSSession,
    POSWebhookEvent,
)

from apps.web.core.http import ProviderHTTPClient, ProviderRequestError
from apps.web.pos.exceptions import (
    POSAPIError,
    POSOrderError,
    POSWebhookError,
    pos_error_from_request,
)

logger = logging.getLogger(__name__)

# Square API version - update periodically
SQUARE_API_VERSION = "2024-01-18"

SIGNATURE_HEADER = "x-square-hmacsha256-signature"

# Coarse order state -> canonical status. DRAFT orders are not visible to
# the merchant yet, so they carry no status.
ORDER_STATE_MAP: dict[str, OrderStatus | None] = {
    "OPEN": OrderStatus.SUBMITTED,
    "COMPLETED": OrderStatus.COMPLETED,
    "CANCELED": OrderStatus.CANCELLED,
    "DRAFT": None,
}

# Fulfillment state -> canonical status
FULFILLMENT_STATE_MAP: dict[str, OrderStatus] = {
    "PROPOSED": OrderStatus.SUBMITTED,
    "RESERVED": OrderStatus.IN_PROGRESS,
    "PREPARED": OrderStatus.READY,
    "FULFILLED": OrderStatus.COMPLETED,
    "CANCELED": OrderStatus.CANCELLED,
}

DEFAULT_PICKUP_DELAY = timedelta(minutes=5)


def map_order_state(state: str) -> OrderStatus | None:
    """Map a Square order state to a canonical status."""
    return ORDER_STATE_MAP.get(state.upper(), OrderStatus.SUBMITTED)


def map_fulfillment_state(state: str) -> OrderStatus:
    """Map a Square fulfillment state to a canonical status."""
    return FULFILLMENT_STATE_MAP.get(state.upper(), OrderStatus.SUBMITTED)


class SquareAdapter:
    """
    Square POS adapter implementing the POSAdapter protocol.

    Integrates with Square's commerce platform for:
    - Order creation (via Orders API, PICKUP fulfillment)
    - Externally-settled payments (via Payments API, source EXTERNAL)
    - Customer lookup (via Customers API)
    - Location discovery (via Locations API)
    - Webhook event handling (order and fulfillment updates)

    API Reference: https://developer.squareup.com/reference/square
    """

    SANDBOX_BASE_URL = "https://connect.squareupsandbox.com"
    PROD_BASE_URL = "https://connect.squareup.com"

    # Square rate limits are per-endpoint, generally generous
    REQUESTS_PER_SECOND = 10.0

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        sandbox: bool = False,
    ) -> None:
        """
        Initialize the Square adapter.

        Args:
            http_client: Optional HTTP client for dependency injection (testing).
            sandbox: If True, use Square sandbox environment.
        """
        self._sandbox = sandbox
        self._base_url = self.SANDBOX_BASE_URL if sandbox else self.PROD_BASE_URL
        self._http = ProviderHTTPClient(
            provider="square",
            base_url=self._base_url,
            http_client=http_client,
            requests_per_second=self.REQUESTS_PER_SECOND,
            default_headers={"Square-Version": SQUARE_API_VERSION},
        )

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        await self._http.close()

    @property
    def provider(self) -> POSProvider:
        """The POS provider this adapter connects to."""
        return POSProvider.SQUARE

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        session: POSSession,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Make an API request and return the decoded JSON body.

        Raises:
            POSAPIError: If request fails after retries
            POSAuthError: If the access token is rejected
            POSRateLimitError: If rate limit exceeded
        """
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
        List the merchant's Square locations.

        Args:
            session: Authenticated session.

        Returns:
            Locations in the order Square returns them.

        Raises:
            POSAPIError: If the API request fails.
        """
        data = await self._request("GET", "/v2/locations", session)
        return [
            POSLocation(
                external_id=location["id"],
                name=location.get("name", ""),
                status=location.get("status", "ACTIVE"),
            )
            for location in data.get("locations", [])
        ]

    async def find_or_create_customer(
        self, session: POSSession, name: str, email: str
    ) -> str | None:
        """
        Search Square customers by exact email, creating one if not found.

        Args:
            session: Authenticated session.
            name: Customer given name.
            email: Customer email address.

        Returns:
            Square customer ID.

        Raises:
            POSAPIError: If the API request fails.
        """
        search = await self._request(
            "POST",
            "/v2/customers/search",
            session,
            json={"query": {"filter": {"email_address": {"exact": email}}}},
        )
        customers = search.get("customers", [])
        if customers:
            customer_id: str = customers[0]["id"]
            logger.info("Found existing Square customer %s", customer_id)
            return customer_id

        created = await self._request(
            "POST",
            "/v2/customers",
            session,
            json={
                "idempotency_key": str(uuid.uuid4()),
                "given_name": name,
                "email_address": email,
            },
        )
        customer_id = created.get("customer", {}).get("id")
        logger.info("Created Square customer %s", customer_id)
        return customer_id

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
        Create an OPEN pickup order in Square.

        Line items carry their unit price as base price money and the
        customer's customizations as the item note. The PICKUP fulfillment
        starts PROPOSED so the merchant's fulfillment updates drive status.

        Args:
            session: Authenticated session.
            location_id: Square location ID.
            order: Order to submit.
            idempotency_key: Fresh idempotency key.

        Returns:
            Result with the Square order ID.

        Raises:
            POSOrderError: If Square rejects the order.
            POSAPIError: If the API request fails.
        """
        pickup_at = order.pickup.pickup_at or (
            datetime.now(UTC) + DEFAULT_PICKUP_DELAY
        )
        body: dict[str, Any] = {
            "idempotency_key": idempotency_key,
            "order": {
                "location_id": location_id,
                "reference_id": order.reference_id,
                "state": "OPEN",
                "line_items": [
                    _build_line_item(item, order.currency) for item in order.items
                ],
                "fulfillments": [
                    {
                        "type": "PICKUP",
                        "state": "PROPOSED",
                        "pickup_details": {
                            "recipient": {
                                "display_name": order.pickup.recipient_name,
                            },
                            "pickup_at": pickup_at.isoformat(),
                            "note": order.pickup.note,
                        },
                    }
                ],
            },
        }
        if order.customer_ref:
            body["order"]["customer_id"] = order.customer_ref

        try:
            data = await self._request("POST", "/v2/orders", session, json=body)
        except POSAPIError as e:
            raise POSOrderError(
                f"Square rejected order {order.reference_id}: "
                f"{_square_error_detail(e.response_body) or e.message}",
                provider="square",
                order_id=order.reference_id,
            ) from e

        created = data.get("order", {})
        external_id = created.get("id")
        if not external_id:
            raise POSOrderError(
                "No order ID in Square response",
                provider="square",
                order_id=order.reference_id,
            )

        logger.info(
            "Created Square order %s for %s (state=%s)",
            external_id,
            order.reference_id,
            created.get("state"),
        )
        return POSOrderResult(
            external_id=external_id,
            status=map_order_state(created.get("state", "OPEN"))
            or OrderStatus.SUBMITTED,
        )

    async def record_external_payment(
        self,
        session: POSSession,
        location_id: str,
        external_order_id: str,
        amount: int,
        currency: str,
        source: str,
        idempotency_key: str,
    ) -> POSExternalPayment:
        """
        Attach an EXTERNAL payment to a Square order.

        Raises:
            POSAPIError: If the API request fails.
        """
        data = await self._request(
            "POST",
            "/v2/payments",
            session,
            json={
                "idempotency_key": idempotency_key,
                "source_id": "EXTERNAL",
                "amount_money": {"amount": amount, "currency": currency},
                "order_id": external_order_id,
                "location_id": location_id,
                "external_details": {"type": "OTHER", "source": source},
            },
        )
        payment = data.get("payment", {})
        return POSExternalPayment(
            external_id=payment.get("id", ""),
            order_id=external_order_id,
            amount=amount,
        )

    # =========================================================================
    # Webhook Handling
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
        secret: str,
        notification_url: str | None = None,
    ) -> bool:
        """
        Verify Square webhook signature.

        Square uses HMAC-SHA256 with the notification URL + body.
        Signature is base64-encoded and sent in x-square-hmacsha256-signature.
        Without a URL, key or signature the request cannot be verified and
        is rejected.

        Args:
            payload: Raw webhook payload bytes.
            signature: Value from x-square-hmacsha256-signature header.
            secret: Webhook signature key from Square dashboard.
            notification_url: The webhook endpoint URL (required for signature).

        Returns:
            True if signature is valid.
        """
        if not notification_url or not secret or not signature:
            logger.warning(
                "Square webhook verification missing %s",
                "URL" if not notification_url else "key or signature",
            )
            return False

        # Square signature is: HMAC-SHA256(webhook_signature_key, url + body)
        combined = notification_url.encode() + payload
        expected = base64.b64encode(
            hmac.new(secret.encode(), combined, hashlib.sha256).digest()
        ).decode()

        return hmac.compare_digest(signature, expected)

    def parse_webhook(self, payload: dict[str, Any]) -> POSWebhookEvent | None:
        """
        Parse a Square webhook payload into a typed event.

        Square webhook event types:
        - order.created: informational
        - order.updated: coarse order state (OPEN, COMPLETED, CANCELED)
        - order.fulfillment.updated: fulfillment state transitions

        Args:
            payload: Parsed JSON webhook payload.

        Returns:
            Typed webhook event, or None for unhandled event types.

        Raises:
            POSWebhookError: If payload cannot be parsed.
        """
        event_type = payload.get("type")
        if not event_type or not isinstance(event_type, str):
            raise POSWebhookError("Square webhook has no type", provider="square")

        try:
            return self._parse_event(event_type, payload)
        except PydanticValidationError as e:
            raise POSWebhookError(
                f"Invalid {event_type} webhook: {e.error_count()} field errors",
                provider="square",
            ) from e

    def _parse_event(
        self, event_type: str, payload: dict[str, Any]
    ) -> POSWebhookEvent | None:
        event_id = payload.get("event_id", "")
        occurred_at = _parse_timestamp(payload.get("created_at"))
        data = _json_object(payload.get("data"), "data")
        data_object = _json_object(data.get("object"), "data.object")

        if event_type == "order.created":
            created = _json_object(data_object.get("order_created"), "order_created")
            return OrderCreatedEvent(
                provider=POSProvider.SQUARE,
                event_id=event_id,
                occurred_at=occurred_at,
                order_id=created.get("order_id") or data.get("id", ""),
            )

        elif event_type == "order.updated":
            updated = _json_object(data_object.get("order_updated"), "order_updated")
            order_id = updated.get("order_id")
            state = updated.get("state")
            if not order_id or not isinstance(state, str) or not state:
                raise POSWebhookError(
                    "order.updated webhook missing order_id or state",
                    provider="square",
                )
            return OrderUpdatedEvent(
                provider=POSProvider.SQUARE,
                event_id=event_id,
                occurred_at=occurred_at,
                order_id=order_id,
                state=state,
                status=map_order_state(state),
            )

        elif event_type == "order.fulfillment.updated":
            updated = _json_object(
                data_object.get("order_fulfillment_updated"),
                "order_fulfillment_updated",
            )
            order_id = updated.get("order_id")
            fulfillment_updates = updated.get("fulfillment_update") or []
            if not order_id or not isinstance(fulfillment_updates, list):
                raise POSWebhookError(
                    "order.fulfillment.updated webhook missing order_id or "
                    "fulfillment_update",
                    provider="square",
                )
            if not fulfillment_updates:
                raise POSWebhookError(
                    "order.fulfillment.updated webhook has no fulfillment_update",
                    provider="square",
                )
            latest = _json_object(fulfillment_updates[-1], "fulfillment_update")
            new_state = latest.get("new_state")
            if not isinstance(new_state, str) or not new_state:
                raise POSWebhookError(
                    "Fulfillment update has no new_state", provider="square"
                )
            return FulfillmentUpdatedEvent(
                provider=POSProvider.SQUARE,
                event_id=event_id,
                occurred_at=occurred_at,
                order_id=order_id,
                state=new_state,
                status=map_fulfillment_state(new_state),
            )

        logger.info("Ignoring unhandled Square webhook type %s", event_type)
        return None


def _build_line_item(item: Any, currency: str) -> dict[str, Any]:
    line_item: dict[str, Any] = {
        "name": item.name,
        "quantity": str(item.quantity),
        "base_price_money": {"amount": item.unit_price, "currency": currency},
    }
    if item.note:
        line_item["note"] = item.note
    return line_item


def _json_object(value: Any, field: str) -> dict[str, Any]:
    """Return a webhook JSON object field, treating a missing one as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise POSWebhookError(
            f"Square webhook field {field} is not an object", provider="square"
        )
    return value


def _parse_timestamp(value: Any) -> datetime:
    if not value:
        return datetime.now(UTC)
    if not isinstance(value, str):
        raise POSWebhookError(
            f"Invalid timestamp in Square webhook: {value!r}", provider="square"
        )
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise POSWebhookError(
            f"Invalid timestamp in Square webhook: {e}",
            provider="square",
        ) from e


def _square_error_detail(response_body: str | None) -> str:
    """Join Square's `errors[].detail` strings from an error body."""
    error = ProviderRequestError("", provider="square", response_body=response_body)
    return "; ".join(
        err.get("detail") or err.get("code", "")
        for err in error.json().get("errors", [])
    )
