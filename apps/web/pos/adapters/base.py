"""Base POS adapter protocol - interface for all POS integrations."""

from typing import Protocol, runtime_checkable

from siplocal_schemas import (
    POSExternalPayment,
    POSLocation,
    POSOrder,
    POSOrderResult,
    POSProvider,
    POSSession,
)


@runtime_checkable
class POSAdapter(Protocol):
    """
    Protocol defining the interface for POS system integrations.

    All POS adapters (Square, Clover, Mock) must implement this interface.
    Methods are async to support non-blocking I/O with external APIs.
    Adapters are constructed per call from explicit config; merchant
    credentials travel in the POSSession argument.
    """

    @property
    def provider(self) -> POSProvider:
        """The POS provider this adapter connects to."""
        ...

    async def close(self) -> None:
        """Release any HTTP resources the adapter owns."""
        ...

    # =========================================================================
    # Merchant Lookups
    # =========================================================================

    async def list_locations(self, session: POSSession) -> list[POSLocation]:
        """
        List the merchant's locations (or registers).

        Args:
            session: Authenticated session.

        Returns:
            Locations in provider order.

        Raises:
            POSAPIError: If the API request fails.
            POSAuthError: If the access token is rejected.
        """
        ...

    async def find_or_create_customer(
        self, session: POSSession, name: str, email: str
    ) -> str | None:
        """
        Find a customer by email, creating one if none exists.

        Args:
            session: Authenticated session.
            name: Customer display name.
            email: Customer email address (lookup key).

        Returns:
            Provider customer ID, or None if the provider has no customer
            directory.

        Raises:
            POSAPIError: If the API request fails.
        """
        ...

    # =========================================================================
    # Order Operations
    # =========================================================================

    async def create_order(
        self,
        session: POSSession,
        location_id: str,
        order: POSOrder,
        idempotency_key: str,
    ) -> POSOrderResult:
        """
        Create a pickup order in the POS system.

        Args:
            session: Authenticated session.
            location_id: POS location identifier.
            order: Order to submit.
            idempotency_key: Fresh key; a retried call with the same key
                must not create a second order.

        Returns:
            Result with the POS order ID.

        Raises:
            POSOrderError: If the POS rejects the order.
            POSAPIError: If the API request fails.
        """
        ...

    async def record_external_payment(
        self,
        session: POSSession,
        location_id: str,
        external_order_id: str,
        amount: int,
        currency: str,
        source: str,
        idempotency_key: str,
    ) -> POSExternalPayment:
        """
        Record a payment settled outside the POS against a POS order.

        Makes the order reconcile in the merchant's own POS reporting.

        Args:
            session: Authenticated session.
            location_id: POS location identifier.
            external_order_id: Order ID in the POS system.
            amount: Amount in minor currency units.
            currency: ISO currency code.
            source: Human-readable payment source shown in the POS.
            idempotency_key: Fresh key for this mutation.

        Returns:
            The recorded payment.

        Raises:
            POSAPIError: If the API request fails.
        """
        ...
