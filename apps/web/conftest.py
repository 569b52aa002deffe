"""
Pytest configuration for Django app tests.
"""

from unittest.mock import patch

import pytest

from apps.web.merchants.models import MerchantCredential, POSProvider
from apps.web.merchants.tests.factories import MerchantCredentialFactory
from apps.web.payments.adapters import MockPaymentAdapter
from apps.web.pos.adapters import MockPOSAdapter


@pytest.fixture
def mock_pos() -> MockPOSAdapter:
    """Route every POS call through one in-memory adapter."""
    adapter = MockPOSAdapter()
    with patch(
        "apps.web.pos.services.order_submission.pos_adapter_for",
        return_value=adapter,
    ):
        yield adapter


@pytest.fixture
def mock_payments() -> MockPaymentAdapter:
    """Route every payment call through one in-memory adapter."""
    adapter = MockPaymentAdapter()
    with patch(
        "apps.web.payments.services.payment_adapter_for",
        return_value=adapter,
    ):
        yield adapter


@pytest.fixture
def merchant() -> MerchantCredential:
    """A mock-POS merchant with its location already resolved."""
    return MerchantCredentialFactory(
        merchant_id="merchant-123",
        pos_provider=POSProvider.MOCK,
        location_id="loc-main",
    )


@pytest.fixture
def square_merchant() -> MerchantCredential:
    """A Square merchant with its location already resolved."""
    return MerchantCredentialFactory(
        merchant_id="square-merchant",
        pos_provider=POSProvider.SQUARE,
        location_id="L-SQUARE-1",
    )
