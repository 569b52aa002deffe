"""SipLocal Schemas - Pydantic models for data contracts."""

from siplocal_schemas.payments import (
    CancelResult,
    CaptureResult,
    DeclineReason,
    PaymentAuthorization,
    PaymentMetadata,
    PaymentMethod,
    PaymentProvider,
    PaymentStatus,
)
from siplocal_schemas.pos import (
    FulfillmentUpdatedEvent,
    MerchantCredentials,
    OrderCreatedEvent,
    OrderStatus,
    OrderUpdatedEvent,
    POSExternalPayment,
    POSLocation,
    POSOrder,
    POSOrderItem,
    POSOrderResult,
    POSPickupDetails,
    POSProvider,
    POSSession,
    POSWebhookEvent,
)

__all__ = [
    # Payments
    "CancelResult",
    "CaptureResult",
    "DeclineReason",
    "PaymentAuthorization",
    "PaymentMetadata",
    "PaymentMethod",
    "PaymentProvider",
    "PaymentStatus",
    # POS
    "FulfillmentUpdatedEvent",
    "MerchantCredentials",
    "OrderCreatedEvent",
    "OrderStatus",
    "OrderUpdatedEvent",
    "POSExternalPayment",
    "POSLocation",
    "POSOrder",
    "POSOrderItem",
    "POSOrderResult",
    "POSPickupDetails",
    "POSProvider",
    "POSSession",
    "POSWebhookEvent",
]
