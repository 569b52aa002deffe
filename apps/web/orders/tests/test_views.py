"""Tests for the order API endpoints."""

import json

from django.urls import reverse

import pytest

from apps.web.orders.models import Order, OrderStatus
from apps.web.orders.tests.factories import (
    CompletionTaskFactory,
    OrderFactory,
    OrderItemFactory,
)


def _post(client, name: str, body: dict):
    return client.post(
        reverse(f"orders:{name}"),
        data=json.dumps(body),
        content_type="application/json",
    )


AUTHORIZE_BODY = {
    "merchantId": "merchant-123",
    "amount": 450,
    "paymentToken": "pm_card_visa",
    "paymentMethod": "stripe_card",
    "items": [{"id": "ITEM-1", "name": "Americano", "price": 450}],
}


@pytest.mark.django_db
class TestAuthorizeEndpoint:
    def test_authorize(self, client, merchant, mock_pos, mock_payments):
        response = _post(client, "authorize", AUTHORIZE_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "AUTHORIZED"
        assert data["providerRef"].startswith("mock-pay-")
        assert "posOrderId" not in data
        assert Order.objects.filter(pk=data["transactionId"]).exists()

    def test_accepts_wrapped_payload(self, client, merchant, mock_pos, mock_payments):
        response = _post(client, "authorize", {"data": {"data": AUTHORIZE_BODY}})

        assert response.status_code == 200
        assert response.json()["status"] == "AUTHORIZED"

    def test_validation_error(self, client, merchant, mock_pos, mock_payments):
        body = {**AUTHORIZE_BODY, "items": []}

        response = _post(client, "authorize", body)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid-argument"
        assert any(d["field"] == "items" for d in error["details"])
        assert Order.objects.count() == 0

    def test_invalid_json(self, client):
        response = client.post(
            reverse("orders:authorize"),
            data="{not json",
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid-argument"

    def test_unknown_merchant(self, client, mock_pos, mock_payments):
        response = _post(client, "authorize", {**AUTHORIZE_BODY, "merchantId": "x"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not-found"

    def test_get_not_allowed(self, client):
        response = client.get(reverse("orders:authorize"))

        assert response.status_code == 405


@pytest.mark.django_db
class TestCancelEndpoint:
    def test_cancel(self, client, merchant, mock_pos, mock_payments):
        task = CompletionTaskFactory()

        response = _post(client, "cancel", {"transactionId": task.order_id})

        assert response.status_code == 200
        assert response.json() == {"success": True, "status": "CANCELLED"}

    def test_cancel_after_submission(self, client, merchant):
        order = OrderFactory(status=OrderStatus.SUBMITTED, pos_order_id="pos-9")

        response = _post(client, "cancel", {"transactionId": order.pk})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "failed-precondition"

    def test_cancel_unknown_order(self, client):
        response = _post(client, "cancel", {"transactionId": "missing"})

        assert response.status_code == 404


@pytest.mark.django_db
class TestCaptureEndpoint:
    def test_capture(self, client, merchant, mock_pos, mock_payments):
        task = CompletionTaskFactory()
        OrderItemFactory(order=task.order)

        response = _post(client, "capture", {"transactionId": task.order_id})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "SUBMITTED"
        assert data["posOrderId"] in mock_pos.orders


@pytest.mark.django_db
class TestSubmitExternalEndpoint:
    def test_submit_external(self, client, merchant, mock_pos, mock_payments):
        body = {
            "merchantId": "merchant-123",
            "amount": 300,
            "items": [{"name": "Drip Coffee", "price": 300}],
        }

        response = _post(client, "submit_external", body)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "SUBMITTED"
        assert data["posOrderId"] in mock_pos.orders


@pytest.mark.django_db
class TestOrderDetailEndpoint:
    def test_returns_order(self, client, merchant):
        order = OrderFactory(status=OrderStatus.READY, pos_order_id="pos-1")
        OrderItemFactory(order=order, name="Mocha", quantity=2, unit_price=500)

        response = client.get(reverse("orders:order_detail", args=[order.pk]))

        assert response.status_code == 200
        data = response.json()
        assert data["transactionId"] == order.pk
        assert data["status"] == "READY"
        assert data["posOrderId"] == "pos-1"
        assert data["paymentStatus"] == "AUTHORIZED"
        assert data["items"] == [
            {"name": "Mocha", "quantity": 2, "price": 500, "customizations": ""}
        ]

    def test_unknown_order(self, client):
        response = client.get(reverse("orders:order_detail", args=["missing"]))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not-found"
