"""Payments module - card and wallet authorization, capture and void."""

from apps.web.payments.exceptions import PaymentError
from apps.web.payments.services import (
    authorize_payment,
    cancel_payment,
    capture_payment,
)

__all__ = [
    "PaymentError",
    "authorize_payment",
    "cancel_payment",
    "capture_payment",
]
