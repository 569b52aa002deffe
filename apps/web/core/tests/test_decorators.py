"""Tests for request decorators."""

import json

from django.http import JsonResponse
from django.test import RequestFactory

import pytest
from pydantic import BaseModel, Field

from apps.web.core.decorators import callable_endpoint, unwrap_payload
from apps.web.core.exceptions import OrderStateError


class EchoRequest(BaseModel):
    name: str = Field(min_length=1)
    quantity: int = 1


@callable_endpoint(EchoRequest)
def echo(request, payload):
    if payload.name == "locked":
        raise OrderStateError("Order is locked", details={"status": "CANCELLED"})
    return JsonResponse(payload.model_dump())


def _post(body) -> JsonResponse:
    data = body if isinstance(body, str) else json.dumps(body)
    request = RequestFactory().post("/echo", data=data, content_type="application/json")
    return echo(request)


class TestUnwrapPayload:
    def test_plain_body(self):
        assert unwrap_payload({"name": "latte"}) == {"name": "latte"}

    def test_single_envelope(self):
        assert unwrap_payload({"data": {"name": "latte"}}) == {"name": "latte"}

    def test_double_envelope(self):
        body = {"data": {"data": {"name": "latte"}}}

        assert unwrap_payload(body) == {"name": "latte"}

    def test_data_alongside_other_keys_is_kept(self):
        body = {"data": {"name": "latte"}, "extra": 1}

        assert unwrap_payload(body) == body

    def test_non_dict_data_is_kept(self):
        assert unwrap_payload({"data": "latte"}) == {"data": "latte"}


class TestCallableEndpoint:
    def test_valid_payload(self):
        response = _post({"name": "latte", "quantity": 2})

        assert response.status_code == 200
        assert json.loads(response.content) == {"name": "latte", "quantity": 2}

    def test_wrapped_payload(self):
        response = _post({"data": {"name": "latte"}})

        assert response.status_code == 200

    def test_validation_error(self):
        response = _post({"name": ""})

        assert response.status_code == 400
        error = json.loads(response.content)["error"]
        assert error["code"] == "invalid-argument"
        assert error["details"][0]["field"] == "name"

    def test_invalid_json(self):
        response = _post("{nope")

        assert response.status_code == 400
        assert json.loads(response.content)["error"]["message"] == (
            "Invalid JSON in request body"
        )

    def test_service_error_from_view(self):
        response = _post({"name": "locked"})

        assert response.status_code == 409
        assert json.loads(response.content) == {
            "error": {
                "code": "failed-precondition",
                "message": "Order is locked",
                "details": {"status": "CANCELLED"},
            }
        }

    def test_unexpected_errors_propagate(self):
        @callable_endpoint(EchoRequest)
        def broken(request, payload):
            raise RuntimeError("bug")

        request = RequestFactory().post(
            "/broken", data=json.dumps({"name": "x"}), content_type="application/json"
        )

        with pytest.raises(RuntimeError):
            broken(request)
