"""Order services - checkout, delayed capture, and cancellation."""

from apps.web.orders.services.authorization import (
    authorize_order,
    submit_external_order,
)
from apps.web.orders.services.capture import (
    CaptureOutcome,
    cancel_order,
    capture_order,
    process_due_captures,
    run_capture,
    schedule_capture,
)

__all__ = [
    "CaptureOutcome",
    "authorize_order",
    "cancel_order",
    "capture_order",
    "process_due_captures",
    "run_capture",
    "schedule_capture",
    "submit_external_order",
]
