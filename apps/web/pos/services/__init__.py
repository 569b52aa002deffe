"""POS services - order submission and webhook reconciliation."""

from apps.web.pos.services.order_submission import (
    build_pos_order,
    fetch_locations,
    find_customer,
    pos_adapter_for,
    submit_order_to_pos,
)
from apps.web.pos.services.webhook_processor import (
    WebhookOutcome,
    process_webhook_event,
)

__all__ = [
    "WebhookOutcome",
    "build_pos_order",
    "fetch_locations",
    "find_customer",
    "pos_adapter_for",
    "process_webhook_event",
    "submit_order_to_pos",
]
