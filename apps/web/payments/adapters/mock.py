"""Mock payment adapter for development and testing."""

import uuid

from siplocal_schemas import (
    CancelResult,
    CaptureResult,
    PaymentAuthorization,
    PaymentMetadata,
    PaymentProvider,
    PaymentStatus,
)

from apps.web.payments.exceptions import PaymentError


class MockPaymentAdapter:
    """
    In-memory payment adapter.

    Usage:
        adapter = MockPaymentAdapter(decline_code="CARD_DECLINED")
        adapter = MockPaymentAdapter(settle_immediately=True)
    """

    def __init__(
        self,
        decline_code: str | None = None,
        settle_immediately: bool = False,
        fail_capture: bool = False,
        fail_cancel: bool = False,
    ) -> None:
        """
        Initialize mock adapter.

        Args:
            decline_code: If set, authorize() declines with this provider code.
            settle_immediately: If True, authorizations come back settled.
            fail_capture: If True, capture() raises PaymentError.
            fail_cancel: If True, cancel() raises PaymentError.
        """
        self._decline_code = decline_code
        self._settle_immediately = settle_immediately
        self._fail_capture = fail_capture
        self._fail_cancel = fail_cancel

        # Recorded calls
        self.authorizations: dict[str, int] = {}
        self.captured: list[str] = []
        self.cancelled: list[str] = []

    async def close(self) -> None:
        """Nothing to release."""

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.MOCK

    async def authorize(
        self,
        amount: int,
        token: str,  # noqa: ARG002
        metadata: PaymentMetadata,  # noqa: ARG002
    ) -> PaymentAuthorization:
        if self._decline_code:
            raise PaymentError(
                "Mock decline", code=self._decline_code, provider="mock"
            )

        provider_ref = f"mock-pay-{uuid.uuid4().hex[:8]}"
        self.authorizations[provider_ref] = amount
        if self._settle_immediately:
            self.captured.append(provider_ref)
        return PaymentAuthorization(
            provider_ref=provider_ref,
            settled=self._settle_immediately,
            status=(
                PaymentStatus.CAPTURED
                if self._settle_immediately
                else PaymentStatus.AUTHORIZED
            ),
        )

    async def capture(self, provider_ref: str) -> CaptureResult:
        if self._fail_capture:
            raise PaymentError("Mock capture failure", code="CAPTURE_FAILED")
        self.captured.append(provider_ref)
        return CaptureResult(captured=True)

    async def cancel(self, provider_ref: str) -> CancelResult:
        if self._fail_cancel:
            raise PaymentError("Mock void failure", code="VOID_FAILED")
        self.cancelled.append(provider_ref)
        return CancelResult(cancelled=True)
