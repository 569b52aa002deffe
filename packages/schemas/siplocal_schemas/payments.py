"""Payment schemas - data contracts for payment provider adapters."""

from enum import Enum

from pydantic import BaseModel, Field

# =============================================================================
# Enums
# =============================================================================


class PaymentProvider(str, Enum):
    """Supported payment processors."""

    SQUARE = "square"
    STRIPE = "stripe"
    MOCK = "mock"


class PaymentMethod(str, Enum):
    """How the customer pays for an order."""

    CARD = "card"  # primary card, Square Payments
    STRIPE_CARD = "stripe_card"  # alternate card, Stripe PaymentIntent
    APPLE_PAY = "apple_pay"  # tokenized wallet, Stripe Charge
    EXTERNAL = "external"  # settled outside this system


class PaymentStatus(str, Enum):
    """Provider-reported payment sub-state (informational)."""

    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
    EXTERNAL = "EXTERNAL"


class DeclineReason(str, Enum):
    """User-facing reasons an authorization was rejected."""

    DECLINED = "declined"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    VERIFICATION_FAILED = "verification_failed"
    GENERIC = "generic"


# =============================================================================
# Requests & Results
# =============================================================================


class PaymentMetadata(BaseModel):
    """Context attached to an authorization request."""

    transaction_id: str
    merchant_id: str
    currency: str = "USD"
    location_id: str = ""
    customer_ref: str | None = None
    customer_name: str = ""
    customer_email: str = ""
    user_id: str = ""
    description: str = ""


class PaymentAuthorization(BaseModel):
    """Outcome of an authorize call."""

    provider_ref: str = Field(description="Provider payment/charge identifier")
    settled: bool = Field(
        default=False,
        description="True when the provider captured the funds immediately",
    )
    status: PaymentStatus = PaymentStatus.AUTHORIZED
    receipt_url: str | None = None


class CaptureResult(BaseModel):
    """Outcome of a capture call."""

    captured: bool
    status: PaymentStatus = PaymentStatus.CAPTURED
    receipt_url: str | None = None


class CancelResult(BaseModel):
    """Outcome of voiding an uncaptured authorization."""

    cancelled: bool
    status: PaymentStatus = PaymentStatus.CANCELLED
