"""Mock POS adapter for development and testing."""

import asyncio
import uuid

from siplocal_schemas import (
    OrderStatus,
    POSExternalPayment,
    POSLocation,
    POSOrder,
    POSOrderResult,
    POSProvider,
    POSSession,
)

from apps.web.pos.exceptions import POSAPIError, POSOrderError


def _default_locations() -> list[POSLocation]:
    return [
        POSLocation(external_id="loc-closed", name="Old Town Kiosk", status="INACTIVE"),
        POSLocation(external_id="loc-main", name="Main Street Cafe"),
        POSLocation(external_id="loc-annex", name="Campus Annex"),
    ]


class MockPOSAdapter:
    """
    Mock POS adapter for development and testing.

    Keeps everything in memory and records each call so tests can assert
    on what was submitted.

    Provides configurable behavior for simulating:
    - Merchant locations (including inactive ones)
    - Order creation success/failure
    - External payment recording failure
    - API latency

    Usage:
        adapter = MockPOSAdapter(fail_orders=True)
        adapter.orders  # {external_id: POSOrder}
    """

    def __init__(
        self,
        locations: list[POSLocation] | None = None,
        fail_orders: bool = False,
        fail_payments: bool = False,
        api_delay_ms: int = 0,
    ) -> None:
        """
        Initialize mock adapter.

        Args:
            locations: Locations to report. Uses default test locations if None.
            fail_orders: If True, order creation will fail.
            fail_payments: If True, external payment recording will fail.
            api_delay_ms: Simulated API delay in milliseconds.
        """
        self._locations = locations if locations is not None else _default_locations()
        self._fail_orders = fail_orders
        self._fail_payments = fail_payments
        self._api_delay_ms = api_delay_ms

        # Recorded calls
        self.orders: dict[str, POSOrder] = {}
        self.order_locations: dict[str, str] = {}
        self.external_payments: list[POSExternalPayment] = []
        self.customers: dict[str, str] = {}
        self.idempotency_keys: list[str] = []

    @property
    def provider(self) -> POSProvider:
        """The POS provider this adapter connects to."""
        return POSProvider.MOCK

    async def close(self) -> None:
        """Nothing to release."""

    async def _delay(self) -> None:
        if self._api_delay_ms > 0:
            await asyncio.sleep(self._api_delay_ms / 1000)

    # =========================================================================
    # Merchant Lookups
    # =========================================================================

    async def list_locations(self, session: POSSession) -> list[POSLocation]:  # noqa: ARG002
        """List configured locations."""
        await self._delay()
        return list(self._locations)

    async def find_or_create_customer(
        self,
        session: POSSession,  # noqa: ARG002
        name: str,  # noqa: ARG002
        email: str,
    ) -> str | None:
        """Return a stable customer ID per email."""
        await self._delay()
        if email not in self.customers:
            self.customers[email] = f"mock-customer-{uuid.uuid4().hex[:8]}"
        return self.customers[email]

    # =========================================================================
    # Order Operations
    # =========================================================================

    async def create_order(
        self,
        session: POSSession,  # noqa: ARG002
        location_id: str,
        order: POSOrder,
        idempotency_key: str,
    ) -> POSOrderResult:
        """Create a new order in the mock POS system."""
        await self._delay()

        if self._fail_orders:
            raise POSOrderError(
                "Mock order creation failure",
                provider="mock",
                order_id=order.reference_id,
            )

        order_id = f"mock-order-{uuid.uuid4().hex[:8]}"
        self.orders[order_id] = order
        self.order_locations[order_id] = location_id
        self.idempotency_keys.append(idempotency_key)

        return POSOrderResult(external_id=order_id, status=OrderStatus.SUBMITTED)

    async def record_external_payment(
        self,
        session: POSSession,  # noqa: ARG002
        location_id: str,  # noqa: ARG002
        external_order_id: str,
        amount: int,
        currency: str,  # noqa: ARG002
        source: str,  # noqa: ARG002
        idempotency_key: str,
    ) -> POSExternalPayment:
        """Record an external payment against a mock order."""
        await self._delay()

        if self._fail_payments:
            raise POSAPIError(
                "Mock external payment failure", provider="mock", status_code=400
            )
        if external_order_id not in self.orders:
            raise POSAPIError(
                f"Order not found: {external_order_id}",
                provider="mock",
                status_code=404,
            )

        payment = POSExternalPayment(
            external_id=f"mock-payment-{uuid.uuid4().hex[:8]}",
            order_id=external_order_id,
            amount=amount,
        )
        self.external_payments.append(payment)
        self.idempotency_keys.append(idempotency_key)
        return payment
