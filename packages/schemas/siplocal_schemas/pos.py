"""POS integration schemas - data contracts for Point of Sale systems."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

# =============================================================================
# Enums
# =============================================================================


class POSProvider(str, Enum):
    """Supported POS providers."""

    SQUARE = "square"
    CLOVER = "clover"
    MOCK = "mock"


class OrderStatus(str, Enum):
    """Canonical order lifecycle status."""

    AUTHORIZED = "AUTHORIZED"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


# =============================================================================
# Authentication
# =============================================================================


class POSSession(BaseModel):
    """Authenticated session with a POS provider."""

    provider: POSProvider
    access_token: str
    expires_at: datetime | None = None


class MerchantCredentials(BaseModel):
    """Resolved per-merchant credentials for provider calls."""

    merchant_id: str
    provider: POSProvider
    access_token: str
    location_id: str

    @property
    def session(self) -> POSSession:
        """Session for POS adapter calls made on behalf of this merchant."""
        return POSSession(provider=self.provider, access_token=self.access_token)


# =============================================================================
# Locations & Customers
# =============================================================================


class POSLocation(BaseModel):
    """A merchant location (or register) in the POS system."""

    external_id: str
    name: str = ""
    status: str = "ACTIVE"

    @property
    def is_active(self) -> bool:
        return self.status.upper() == "ACTIVE"


# =============================================================================
# Orders
# =============================================================================


class POSOrderItem(BaseModel):
    """Line item in a POS order."""

    catalog_item_id: str = ""
    name: str
    quantity: int = 1
    unit_price: int = Field(description="Unit price in minor currency units")
    note: str = ""


class POSPickupDetails(BaseModel):
    """Pickup fulfillment metadata."""

    recipient_name: str = "Customer"
    pickup_at: datetime | None = None
    note: str = "Order placed via mobile app - awaiting preparation"


class POSOrder(BaseModel):
    """Order to submit to the POS system."""

    reference_id: str = Field(description="Local transaction ID")
    items: list[POSOrderItem]
    pickup: POSPickupDetails = Field(default_factory=POSPickupDetails)
    customer_ref: str | None = None
    currency: str = "USD"

    @property
    def total(self) -> int:
        return sum(item.unit_price * item.quantity for item in self.items)


class POSOrderResult(BaseModel):
    """Result of creating an order in the POS system."""

    external_id: str = Field(description="Order ID in the POS system")
    status: OrderStatus = OrderStatus.SUBMITTED


class POSExternalPayment(BaseModel):
    """An externally-settled payment recorded against a POS order."""

    external_id: str
    order_id: str
    amount: int


# =============================================================================
# Webhooks
# =============================================================================


class POSWebhookEventBase(BaseModel):
    """Base for all POS webhook events."""

    provider: POSProvider
    event_id: str
    occurred_at: datetime
    order_id: str


class OrderCreatedEvent(POSWebhookEventBase):
    """Order was created in the POS system (informational)."""

    event_type: Literal["order_created"] = "order_created"


class OrderUpdatedEvent(POSWebhookEventBase):
    """Coarse order state changed in the POS system."""

    event_type: Literal["order_updated"] = "order_updated"
    state: str
    status: OrderStatus | None = None


class FulfillmentUpdatedEvent(POSWebhookEventBase):
    """Fine-grained fulfillment state changed in the POS system."""

    event_type: Literal["fulfillment_updated"] = "fulfillment_updated"
    state: str
    status: OrderStatus | None = None


# Union type for all webhook events
POSWebhookEvent = OrderCreatedEvent | OrderUpdatedEvent | FulfillmentUpdatedEvent
