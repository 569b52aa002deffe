"""Tests for the ready-for-pickup push dispatcher."""

import json

from django.test import override_settings

import httpx
import pytest
import respx

from apps.web.notifications.services import (
    ONESIGNAL_URL,
    build_ready_notification,
    dispatch,
)
from apps.web.notifications.tests.factories import UserDeviceFactory
from apps.web.orders.models import OrderStatus
from apps.web.orders.tests.factories import OrderFactory


@pytest.fixture
def ready_order():
    return OrderFactory(
        status=OrderStatus.READY,
        merchant_name="Bean There",
        user_id="user-42",
        pos_order_id="SQ-READY",
    )


@pytest.mark.django_db
class TestBuildReadyNotification:
    @override_settings(ONESIGNAL_APP_ID="app-123")
    def test_payload(self, ready_order):
        payload = build_ready_notification(ready_order, ["player-1"])

        assert payload["app_id"] == "app-123"
        assert payload["include_player_ids"] == ["player-1"]
        assert payload["contents"]["en"] == (
            "Your order from Bean There is ready for pickup!"
        )
        assert payload["data"] == {
            "orderId": ready_order.transaction_id,
            "status": "READY",
            "coffeeShopName": "Bean There",
        }

    def test_falls_back_to_generic_shop_name(self, ready_order):
        ready_order.merchant_name = ""

        payload = build_ready_notification(ready_order, ["player-1"])

        assert payload["data"]["coffeeShopName"] == "Coffee Shop"


@pytest.mark.django_db
class TestDispatch:
    @pytest.fixture(autouse=True)
    def _onesignal_settings(self):
        with override_settings(ONESIGNAL_APP_ID="app-123", ONESIGNAL_API_KEY="rest-key"):
            yield

    @respx.mock
    def test_sends_to_every_device(self, ready_order):
        UserDeviceFactory(user_id="user-42", device_id="player-1")
        UserDeviceFactory(user_id="user-42", device_id="player-2")
        UserDeviceFactory(user_id="someone-else", device_id="player-3")
        route = respx.post(ONESIGNAL_URL).mock(
            return_value=httpx.Response(200, json={"id": "notif-1"})
        )

        assert dispatch("user-42", ready_order) is True

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Basic rest-key"
        body = json.loads(request.content)
        assert sorted(body["include_player_ids"]) == ["player-1", "player-2"]
        assert body["data"]["orderId"] == ready_order.transaction_id

    @respx.mock
    def test_no_devices(self, ready_order):
        route = respx.post(ONESIGNAL_URL)

        assert dispatch("user-42", ready_order) is False
        assert not route.called

    def test_no_user(self, ready_order):
        assert dispatch("", ready_order) is False

    @override_settings(ONESIGNAL_API_KEY="")
    @respx.mock
    def test_unconfigured(self, ready_order):
        UserDeviceFactory(user_id="user-42")
        route = respx.post(ONESIGNAL_URL)

        assert dispatch("user-42", ready_order) is False
        assert not route.called

    @respx.mock
    def test_provider_error(self, ready_order):
        UserDeviceFactory(user_id="user-42")
        respx.post(ONESIGNAL_URL).mock(
            return_value=httpx.Response(400, json={"errors": ["bad app id"]})
        )

        assert dispatch("user-42", ready_order) is False

    @respx.mock
    def test_network_error(self, ready_order):
        UserDeviceFactory(user_id="user-42")
        respx.post(ONESIGNAL_URL).mock(side_effect=httpx.ConnectError("down"))

        assert dispatch("user-42", ready_order) is False

    @respx.mock
    def test_does_not_touch_order(self, ready_order):
        UserDeviceFactory(user_id="user-42")
        respx.post(ONESIGNAL_URL).mock(return_value=httpx.Response(500))

        dispatch("user-42", ready_order)

        ready_order.refresh_from_db()
        assert ready_order.status == OrderStatus.READY
