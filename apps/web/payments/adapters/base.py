"""Base payment adapter protocol - interface for all payment processors."""

from typing import Protocol, runtime_checkable

from siplocal_schemas import (
    CancelResult,
    CaptureResult,
    PaymentAuthorization,
    PaymentMetadata,
    PaymentProvider,
)


@runtime_checkable
class PaymentAdapter(Protocol):
    """
    Protocol defining the interface for payment processor integrations.

    Every adapter is built from explicit config (API key or merchant
    access token); there is no module-level client state.
    """

    @property
    def provider(self) -> PaymentProvider:
        """The payment processor this adapter connects to."""
        ...

    async def close(self) -> None:
        """Release any HTTP resources the adapter owns."""
        ...

    async def authorize(
        self, amount: int, token: str, metadata: PaymentMetadata
    ) -> PaymentAuthorization:
        """
        Authorize (hold) funds without capturing them.

        Some processors settle immediately despite an authorize-only
        request; that case is reported with settled=True.

        Args:
            amount: Amount in minor currency units.
            token: Client-side payment token (nonce, payment method or source).
            metadata: Order context sent to the processor.

        Returns:
            The authorization.

        Raises:
            PaymentError: If the processor declines or the call fails.
        """
        ...

    async def capture(self, provider_ref: str) -> CaptureResult:
        """
        Capture a previously authorized payment.

        Raises:
            PaymentError: If the capture fails.
        """
        ...

    async def cancel(self, provider_ref: str) -> CancelResult:
        """
        Void an uncaptured authorization.

        Raises:
            PaymentError: If the processor refuses to void.
        """
        ...
