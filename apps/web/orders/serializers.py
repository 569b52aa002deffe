"""
Pydantic schemas for the order API.

Field names are snake_case in Python and camelCase on the wire, matching
what the mobile clients send.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema accepting camelCase (or snake_case) keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================


class OrderItemRequest(CamelModel):
    """A line item as sent by the client."""

    id: str = ""
    name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    price: int = Field(ge=0, description="Unit price in minor currency units")
    customizations: str = ""
    selected_size_id: str | None = None
    selected_modifier_ids: list[str] = Field(default_factory=list)


class OrderDetails(CamelModel):
    """Fields shared by every order-creating request."""

    merchant_id: str = Field(min_length=1)
    amount: int = Field(gt=0, description="Total in minor currency units")
    items: list[OrderItemRequest] = Field(min_length=1)
    customer_name: str = ""
    customer_email: EmailStr | None = None
    pickup_time: datetime | None = None
    user_id: str = ""
    merchant_name: str = ""


class AuthorizeOrderRequest(OrderDetails):
    """Authorize a payment for a new order."""

    payment_token: str = Field(min_length=1)
    payment_method: Literal["card", "stripe_card", "apple_pay"]


class SubmitExternalOrderRequest(OrderDetails):
    """Submit an order whose payment was settled outside this service."""


class TransactionRequest(CamelModel):
    """Reference to an existing order."""

    transaction_id: str = Field(min_length=1)


# =============================================================================
# Responses
# =============================================================================


class AuthorizeOrderResponse(CamelModel):
    transaction_id: str
    status: str
    provider_ref: str
    pos_order_id: str | None = None


class SubmitExternalOrderResponse(CamelModel):
    transaction_id: str
    pos_order_id: str
    status: str


class OrderActionResponse(CamelModel):
    """Result of cancel/capture."""

    success: bool
    status: str
    pos_order_id: str | None = None


class OrderItemResponse(CamelModel):
    name: str
    quantity: int
    price: int
    customizations: str


class OrderStatusResponse(CamelModel):
    """Order state as shown to the customer."""

    transaction_id: str
    merchant_id: str
    status: str
    payment_status: str
    payment_method: str
    pos_order_id: str | None
    amount: int
    currency: str
    receipt_url: str = ""
    items: list[OrderItemResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
