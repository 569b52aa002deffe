"""Admin registration for order models."""

from django.contrib import admin

from apps.web.orders.models import CompletionTask, Order, OrderItem


class OrderItemInline(admin.TabularInline):
    """Inline for items within an order."""

    model = OrderItem
    extra = 0
    fields = ["name", "quantity", "unit_price", "customizations", "line_total"]
    readonly_fields = ["name", "quantity", "unit_price", "customizations", "line_total"]


class CompletionTaskInline(admin.StackedInline):
    """Inline for an order's capture task."""

    model = CompletionTask
    extra = 0
    can_delete = False
    readonly_fields = [
        "scheduled_for",
        "fallback_for",
        "status",
        "attempts",
        "error",
        "claimed_at",
        "completed_at",
        "failed_at",
    ]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin for orders. Orders are audit records and cannot be deleted."""

    list_display = [
        "transaction_id",
        "merchant_id",
        "pos_provider",
        "status",
        "payment_method",
        "payment_status",
        "amount",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "payment_method", "pos_provider"]
    search_fields = [
        "transaction_id",
        "merchant_id",
        "pos_order_id",
        "payment_provider_ref",
        "customer_email",
    ]
    inlines = [OrderItemInline, CompletionTaskInline]
    readonly_fields = [
        "transaction_id",
        "created_at",
        "updated_at",
        "submitted_at",
        "completed_at",
        "cancelled_at",
    ]

    fieldsets = [
        (None, {"fields": ["transaction_id", "status", "error"]}),
        (
            "Merchant",
            {
                "fields": [
                    "merchant_id",
                    "merchant_name",
                    "pos_provider",
                    "location_id",
                    "pos_order_id",
                ]
            },
        ),
        (
            "Customer",
            {
                "fields": [
                    "customer_name",
                    "customer_email",
                    "customer_ref",
                    "user_id",
                    "pickup_time",
                ]
            },
        ),
        (
            "Payment",
            {
                "fields": [
                    "amount",
                    "currency",
                    "payment_method",
                    "payment_provider_ref",
                    "payment_status",
                    "receipt_url",
                ]
            },
        ),
        (
            "Timestamps",
            {
                "fields": [
                    "created_at",
                    "updated_at",
                    "submitted_at",
                    "completed_at",
                    "cancelled_at",
                ]
            },
        ),
    ]

    def has_delete_permission(self, request, obj=None):  # type: ignore[no-untyped-def]
        return False


@admin.register(CompletionTask)
class CompletionTaskAdmin(admin.ModelAdmin):
    """Admin for capture tasks."""

    list_display = ["order", "status", "scheduled_for", "attempts", "updated_at"]
    list_filter = ["status"]
    search_fields = ["order__transaction_id", "order__merchant_id"]
    readonly_fields = [
        "created_at",
        "updated_at",
        "claimed_at",
        "completed_at",
        "failed_at",
    ]
