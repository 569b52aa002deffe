"""Tests for CloverAdapter - mocked Clover API calls."""

import json

import httpx
import pytest
import respx
from siplocal_schemas import (
    POSOrder,
    POSOrderItem,
    POSPickupDetails,
    POSProvider,
    POSSession,
)

from apps.web.pos.adapters import CloverAdapter, get_adapter
from apps.web.pos.adapters.base import POSAdapter
from apps.web.pos.exceptions import POSAPIError, POSAuthError, POSOrderError

BASE_URL = "https://sandbox.dev.clover.com"


@pytest.fixture
def adapter() -> CloverAdapter:
    return CloverAdapter(sandbox=True, clover_merchant_id="MID-1")


@pytest.fixture
def session() -> POSSession:
    return POSSession(provider=POSProvider.CLOVER, access_token="clover-token")


@pytest.fixture
def pos_order() -> POSOrder:
    return POSOrder(
        reference_id="txn-002",
        items=[
            POSOrderItem(catalog_item_id="CLV-ITEM", name="Chai", quantity=3, unit_price=400),
            POSOrderItem(name="Muffin", unit_price=300, note="no butter"),
        ],
        pickup=POSPickupDetails(recipient_name="Alan"),
    )


class TestCloverAdapterBasics:
    def test_implements_protocol(self, adapter):
        assert isinstance(adapter, POSAdapter)

    def test_factory(self):
        assert isinstance(get_adapter(POSProvider.CLOVER), CloverAdapter)

    @pytest.mark.asyncio
    async def test_location_lookup_needs_merchant_id(self, session):
        with pytest.raises(POSAPIError):
            await CloverAdapter().list_locations(session)

    @pytest.mark.asyncio
    @respx.mock
    async def test_merchant_is_the_location(self, adapter, session):
        respx.get(f"{BASE_URL}/v3/merchants/MID-1").mock(
            return_value=httpx.Response(200, json={"id": "MID-1", "name": "Chai Bar"})
        )

        locations = await adapter.list_locations(session)

        assert len(locations) == 1
        assert locations[0].external_id == "MID-1"
        assert locations[0].is_active

    @pytest.mark.asyncio
    async def test_no_customer_directory(self, adapter, session):
        assert await adapter.find_or_create_customer(session, "A", "a@b.co") is None


class TestCloverOrders:
    @pytest.mark.asyncio
    @respx.mock
    async def test_create_atomic_order(self, adapter, session, pos_order):
        route = respx.post(f"{BASE_URL}/v3/merchants/MID-1/atomic_order/orders").mock(
            return_value=httpx.Response(200, json={"id": "CLV-ORDER-1"})
        )

        result = await adapter.create_order(session, "MID-1", pos_order, "idem-9")

        assert result.external_id == "CLV-ORDER-1"
        request = route.calls.last.request
        assert request.headers["Idempotency-Key"] == "idem-9"
        cart = json.loads(request.content)["orderCart"]
        assert cart["title"] == "txn-002"
        assert cart["lineItems"][0] == {
            "name": "Chai",
            "price": 400,
            "unitQty": 3000,
            "item": {"id": "CLV-ITEM"},
        }
        assert cart["lineItems"][1]["note"] == "no butter"
        assert cart["note"].startswith("Alan: ")

    @pytest.mark.asyncio
    @respx.mock
    async def test_rejected_order(self, adapter, session, pos_order):
        respx.post(f"{BASE_URL}/v3/merchants/MID-1/atomic_order/orders").mock(
            return_value=httpx.Response(400, json={"message": "bad item"})
        )

        with pytest.raises(POSOrderError):
            await adapter.create_order(session, "MID-1", pos_order, "idem-9")

    @pytest.mark.asyncio
    @respx.mock
    async def test_expired_token(self, adapter, session, pos_order):
        respx.post(f"{BASE_URL}/v3/merchants/MID-1/atomic_order/orders").mock(
            return_value=httpx.Response(401)
        )

        with pytest.raises(POSAuthError):
            await adapter.create_order(session, "MID-1", pos_order, "idem-9")

    @pytest.mark.asyncio
    @respx.mock
    async def test_record_external_tender(self, adapter, session):
        route = respx.post(
            f"{BASE_URL}/v3/merchants/MID-1/orders/CLV-ORDER-1/payments"
        ).mock(return_value=httpx.Response(200, json={"id": "CLV-PAY-1"}))

        payment = await adapter.record_external_payment(
            session,
            "MID-1",
            "CLV-ORDER-1",
            amount=1500,
            currency="USD",
            source="SipLocal App",
            idempotency_key="idem-10",
        )

        assert payment.external_id == "CLV-PAY-1"
        body = json.loads(route.calls.last.request.content)
        assert body["amount"] == 1500
        assert body["tender"] == {"label": "SipLocal App"}
