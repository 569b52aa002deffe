"""
Caller-facing service errors.

Each error carries a machine-readable code, an HTTP status and a short
user-facing message. Views turn them into a structured JSON error body.
"""

from typing import Any


class ServiceError(Exception):
    """Base for errors surfaced to API callers."""

    code = "internal"
    http_status = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


class InvalidArgument(ServiceError):
    """Missing or malformed request fields. Nothing was mutated."""

    code = "invalid-argument"
    http_status = 400


class CredentialsNotFound(ServiceError):
    """Merchant has no resolvable provider account."""

    code = "not-found"
    http_status = 404


class OrderNotFound(ServiceError):
    """No order exists for the given transaction ID."""

    code = "not-found"
    http_status = 404


class OrderStateError(ServiceError):
    """The order is not in a state that allows the requested operation."""

    code = "failed-precondition"
    http_status = 409


class ProviderDeclined(ServiceError):
    """Authorization was rejected by the payment provider."""

    code = "payment-declined"
    http_status = 402

    def __init__(self, message: str, reason: str, details: Any = None) -> None:
        super().__init__(message, details)
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["error"]["reason"] = self.reason
        return data


class POSOrderCreationFailed(ServiceError):
    """
    Payment went through but the POS order could not be created.

    The order is persisted (FAILED, no POS order ID) so the payment is
    never orphaned; it needs manual reconciliation.
    """

    code = "pos-order-failed"
    http_status = 502

    def __init__(self, message: str, transaction_id: str, details: Any = None) -> None:
        super().__init__(message, details)
        self.transaction_id = transaction_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["error"]["transactionId"] = self.transaction_id
        return data


class ExternalPaymentLinkFailed(ServiceError):
    """POS order exists but is not linked to a payment in the POS ledger."""

    code = "external-payment-link-failed"
    http_status = 502


class CaptureFailed(ServiceError):
    """Capturing an authorized payment failed. The order moved to FAILED."""

    code = "capture-failed"
    http_status = 502
