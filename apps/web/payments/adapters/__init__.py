"""Payment adapters - implementations for each payment processor."""

from siplocal_schemas import MerchantCredentials, PaymentMethod, POSProvider

from apps.web.payments.adapters.base import PaymentAdapter
from apps.web.payments.adapters.mock import MockPaymentAdapter
from apps.web.payments.adapters.square import SquarePaymentAdapter
from apps.web.payments.adapters.stripe import (
    StripeChargeAdapter,
    StripePaymentIntentAdapter,
)


def get_payment_adapter(
    method: PaymentMethod | str,
    credentials: MerchantCredentials,
    stripe_api_key: str = "",
    square_sandbox: bool = False,
) -> PaymentAdapter:
    """
    Get a payment adapter for a payment method and merchant.

    Args:
        method: How the customer is paying.
        credentials: The merchant's resolved credentials.
        stripe_api_key: Platform Stripe secret key (Stripe methods only).
        square_sandbox: If True, use the Square sandbox environment.

    Returns:
        An adapter implementing the PaymentAdapter protocol.

    Raises:
        ValueError: If the method has no processor, or the merchant's POS
            cannot take card payments.
    """
    if credentials.provider == POSProvider.MOCK:
        return MockPaymentAdapter()
    if method == PaymentMethod.CARD:
        if credentials.provider != POSProvider.SQUARE:
            raise ValueError(
                f"Card payments require a Square merchant, not {credentials.provider}"
            )
        return SquarePaymentAdapter(
            access_token=credentials.access_token,
            location_id=credentials.location_id,
            sandbox=square_sandbox,
        )
    elif method == PaymentMethod.STRIPE_CARD:
        return StripePaymentIntentAdapter(api_key=stripe_api_key)
    elif method == PaymentMethod.APPLE_PAY:
        return StripeChargeAdapter(api_key=stripe_api_key)
    raise ValueError(f"No payment processor for method: {method}")


__all__ = [
    "MockPaymentAdapter",
    "PaymentAdapter",
    "SquarePaymentAdapter",
    "StripeChargeAdapter",
    "StripePaymentIntentAdapter",
    "get_payment_adapter",
]
