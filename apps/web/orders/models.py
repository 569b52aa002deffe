"""
Order models - orders, line items, and scheduled capture tasks.

Orders are audit records: they are mutated through their lifecycle but
never deleted.
"""

import uuid

from django.db import models

from apps.web.core.models import TimestampedModel
from apps.web.merchants.models import POSProvider


def new_transaction_id() -> str:
    return uuid.uuid4().hex


class OrderStatus(models.TextChoices):
    """Canonical order lifecycle status."""

    AUTHORIZED = "AUTHORIZED", "Authorized"
    SUBMITTED = "SUBMITTED", "Submitted"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    READY = "READY", "Ready"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"
    FAILED = "FAILED", "Failed"


class PaymentMethod(models.TextChoices):
    """How the customer paid."""

    CARD = "card", "Card (Square)"
    STRIPE_CARD = "stripe_card", "Card (Stripe)"
    APPLE_PAY = "apple_pay", "Apple Pay"
    EXTERNAL = "external", "Externally settled"


class PaymentStatus(models.TextChoices):
    """Provider-reported payment sub-state (informational)."""

    AUTHORIZED = "AUTHORIZED", "Authorized"
    CAPTURED = "CAPTURED", "Captured"
    CANCELLED = "CANCELLED", "Cancelled"
    FAILED = "FAILED", "Failed"
    EXTERNAL = "EXTERNAL", "External"


class Order(TimestampedModel):
    """
    Customer order.

    Tracks payment authorization, POS order creation, and the status the
    POS reports back through webhooks.
    """

    transaction_id = models.CharField(
        max_length=64,
        primary_key=True,
        default=new_transaction_id,
        editable=False,
    )

    # Merchant / POS
    merchant_id = models.CharField(max_length=255, db_index=True)
    merchant_name = models.CharField(
        max_length=200,
        blank=True,
        help_text="Display name, used in notifications",
    )
    pos_provider = models.CharField(max_length=20, choices=POSProvider.choices)
    location_id = models.CharField(max_length=255, blank=True)
    pos_order_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Order ID in the POS system (set once)",
    )

    # Amount
    amount = models.PositiveIntegerField(help_text="Total in minor currency units")
    currency = models.CharField(max_length=3, default="USD")

    # Customer
    customer_name = models.CharField(max_length=200, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_ref = models.CharField(
        max_length=255,
        blank=True,
        help_text="Customer ID in the POS system",
    )
    user_id = models.CharField(
        max_length=255,
        blank=True,
        db_index=True,
        help_text="Owning app user",
    )
    pickup_time = models.DateTimeField(null=True, blank=True)

    # Payment
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_provider_ref = models.CharField(
        max_length=255,
        blank=True,
        help_text="Provider payment/charge identifier",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.AUTHORIZED,
    )
    receipt_url = models.URLField(max_length=500, blank=True)

    # Lifecycle
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.AUTHORIZED,
    )
    error = models.TextField(blank=True, help_text="Last failure detail")
    submitted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the POS order was created",
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["merchant_id", "status"]),
            models.Index(fields=["payment_provider_ref"]),
        ]

    def __str__(self) -> str:
        return f"Order {self.transaction_id} ({self.status})"


class OrderItem(models.Model):
    """
    Line item in an order.

    Stores a snapshot of the item at order time.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )
    item_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Catalog item ID in the POS system",
    )
    name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.PositiveIntegerField(help_text="Minor currency units")
    customizations = models.TextField(blank=True)
    selected_size_id = models.CharField(max_length=255, blank=True)
    selected_modifier_ids = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.name}"

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


class TaskStatus(models.TextChoices):
    """Capture task state."""

    SCHEDULED = "SCHEDULED", "Scheduled"
    RUNNING = "RUNNING", "Running"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"
    CANCELLED = "CANCELLED", "Cancelled"


class CompletionTask(TimestampedModel):
    """
    Durable due-time record for a delayed payment capture.

    Polled by the process_captures worker. A capture first claims the task
    (RUNNING) under the order lock and then calls the providers without
    holding it. If an attempt errors out the task is pushed to its fallback
    time and retried once more.
    """

    order = models.OneToOneField(
        Order,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="completion_task",
    )
    scheduled_for = models.DateTimeField(db_index=True)
    fallback_for = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=TaskStatus.choices,
        default=TaskStatus.SCHEDULED,
    )
    attempts = models.PositiveIntegerField(default=0)
    error = models.TextField(blank=True)
    claimed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When a worker last claimed the task for capture",
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "scheduled_for"]),
        ]

    def __str__(self) -> str:
        return f"Capture {self.order_id} ({self.status})"
