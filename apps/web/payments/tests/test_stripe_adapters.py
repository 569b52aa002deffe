"""Tests for the Stripe PaymentIntent and Charge adapters."""

from unittest.mock import MagicMock, patch

import pytest
import stripe
from siplocal_schemas import (
    DeclineReason,
    PaymentMetadata,
    PaymentProvider,
    PaymentStatus,
)

from apps.web.payments.adapters import (
    PaymentAdapter,
    StripeChargeAdapter,
    StripePaymentIntentAdapter,
)
from apps.web.payments.exceptions import PaymentError


@pytest.fixture
def metadata():
    return PaymentMetadata(
        transaction_id="txn_123",
        merchant_id="merchant-123",
        customer_email="ada@example.com",
        customer_name="Ada",
        user_id="user-42",
        description="Order from Bean There",
    )


class TestStripePaymentIntentAdapter:
    """Tests for the alternate card path."""

    def test_implements_protocol(self):
        adapter = StripePaymentIntentAdapter(api_key="sk_test_123")

        assert isinstance(adapter, PaymentAdapter)
        assert adapter.provider == PaymentProvider.STRIPE

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.PaymentIntent.create")
    async def test_authorize_manual_capture(self, mock_create, metadata):
        """Intents are confirmed now and captured later."""
        mock_create.return_value = MagicMock(id="pi_123", status="requires_capture")
        adapter = StripePaymentIntentAdapter(api_key="sk_test_123")

        result = await adapter.authorize(850, "pm_card_visa", metadata)

        assert result.provider_ref == "pi_123"
        assert result.settled is False
        assert result.status == PaymentStatus.AUTHORIZED

        kwargs = mock_create.call_args.kwargs
        assert kwargs["api_key"] == "sk_test_123"
        assert kwargs["amount"] == 850
        assert kwargs["currency"] == "usd"
        assert kwargs["capture_method"] == "manual"
        assert kwargs["confirm"] is True
        assert kwargs["payment_method"] == "pm_card_visa"
        assert kwargs["metadata"]["transactionId"] == "txn_123"
        assert kwargs["metadata"]["merchantId"] == "merchant-123"

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.PaymentIntent.create")
    async def test_authorize_already_succeeded(self, mock_create, metadata):
        mock_create.return_value = MagicMock(id="pi_123", status="succeeded")
        adapter = StripePaymentIntentAdapter(api_key="sk_test_123")

        result = await adapter.authorize(850, "pm_card_visa", metadata)

        assert result.settled is True
        assert result.status == PaymentStatus.CAPTURED

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.PaymentIntent.create")
    async def test_authorize_requires_action(self, mock_create, metadata):
        mock_create.return_value = MagicMock(id="pi_123", status="requires_action")
        adapter = StripePaymentIntentAdapter(api_key="sk_test_123")

        with pytest.raises(PaymentError) as exc_info:
            await adapter.authorize(850, "pm_card_3ds", metadata)

        assert exc_info.value.code == "requires_action"

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.PaymentIntent.create")
    async def test_authorize_card_error(self, mock_create, metadata):
        """Stripe card errors become classified PaymentErrors."""
        mock_create.side_effect = stripe.CardError(
            "Your card has insufficient funds.", None, "insufficient_funds"
        )
        adapter = StripePaymentIntentAdapter(api_key="sk_test_123")

        with pytest.raises(PaymentError) as exc_info:
            await adapter.authorize(850, "pm_card_chargeDeclined", metadata)

        assert exc_info.value.code == "insufficient_funds"
        assert exc_info.value.decline_reason == DeclineReason.INSUFFICIENT_FUNDS
        assert exc_info.value.provider == "stripe"

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.PaymentIntent.capture")
    async def test_capture(self, mock_capture):
        mock_capture.return_value = MagicMock(status="succeeded")
        adapter = StripePaymentIntentAdapter(api_key="sk_test_123")

        result = await adapter.capture("pi_123")

        assert result.captured is True
        mock_capture.assert_called_once_with("pi_123", api_key="sk_test_123")

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.PaymentIntent.cancel")
    async def test_cancel(self, mock_cancel):
        mock_cancel.return_value = MagicMock(status="canceled")
        adapter = StripePaymentIntentAdapter(api_key="sk_test_123")

        result = await adapter.cancel("pi_123")

        assert result.cancelled is True


class TestStripeChargeAdapter:
    """Tests for the Apple Pay path."""

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.Charge.create")
    async def test_authorize_uncaptured(self, mock_create, metadata):
        mock_create.return_value = MagicMock(
            id="ch_123",
            status="succeeded",
            captured=False,
            receipt_url="https://pay.stripe.com/receipts/ch_123",
        )
        adapter = StripeChargeAdapter(api_key="sk_test_123")

        result = await adapter.authorize(850, "tok_applepay", metadata)

        assert result.provider_ref == "ch_123"
        assert result.settled is False
        assert result.receipt_url == "https://pay.stripe.com/receipts/ch_123"

        kwargs = mock_create.call_args.kwargs
        assert kwargs["source"] == "tok_applepay"
        assert kwargs["capture"] is False
        assert kwargs["metadata"]["paymentMethod"] == "apple_pay"

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.Charge.create")
    async def test_authorize_captured_anyway(self, mock_create, metadata):
        """A wallet charge that comes back captured is reported as settled."""
        mock_create.return_value = MagicMock(
            id="ch_123", status="succeeded", captured=True, receipt_url=None
        )
        adapter = StripeChargeAdapter(api_key="sk_test_123")

        result = await adapter.authorize(850, "tok_applepay", metadata)

        assert result.settled is True
        assert result.status == PaymentStatus.CAPTURED

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.Charge.create")
    async def test_authorize_failed_charge(self, mock_create, metadata):
        mock_create.return_value = MagicMock(
            id="ch_123",
            status="failed",
            failure_code="card_declined",
            failure_message="Your card was declined.",
        )
        adapter = StripeChargeAdapter(api_key="sk_test_123")

        with pytest.raises(PaymentError) as exc_info:
            await adapter.authorize(850, "tok_applepay", metadata)

        assert exc_info.value.decline_reason == DeclineReason.DECLINED

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.Charge.capture")
    async def test_capture(self, mock_capture):
        mock_capture.return_value = MagicMock(
            captured=True, receipt_url="https://pay.stripe.com/receipts/ch_123"
        )
        adapter = StripeChargeAdapter(api_key="sk_test_123")

        result = await adapter.capture("ch_123")

        assert result.captured is True
        assert result.receipt_url == "https://pay.stripe.com/receipts/ch_123"

    @pytest.mark.asyncio
    @patch("apps.web.payments.adapters.stripe.stripe.Refund.create")
    async def test_cancel_refunds_the_hold(self, mock_refund):
        mock_refund.return_value = MagicMock(status="succeeded")
        adapter = StripeChargeAdapter(api_key="sk_test_123")

        result = await adapter.cancel("ch_123")

        assert result.cancelled is True
        mock_refund.assert_called_once_with(charge="ch_123", api_key="sk_test_123")
