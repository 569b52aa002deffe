"""
Merchant credential resolution.

Turns a merchant ID into the access token and location needed for
provider calls, discovering and caching the location on first use.
"""

import logging

from django.utils import timezone

from siplocal_schemas import MerchantCredentials, POSProvider

from apps.web.core.exceptions import CredentialsNotFound, ServiceError
from apps.web.merchants.models import MerchantCredential
from apps.web.pos.exceptions import POSError
from apps.web.pos.services.order_submission import fetch_locations

logger = logging.getLogger(__name__)


def resolve_credentials(merchant_id: str) -> MerchantCredentials:
    """
    Resolve a merchant's POS credentials.

    If no location is cached, the first ACTIVE location reported by the
    provider is selected and persisted. Merchants with several locations
    are not disambiguated further.

    Args:
        merchant_id: Merchant identifier.

    Returns:
        Credentials with a non-empty location ID.

    Raises:
        CredentialsNotFound: If no credential exists, it has no token, or
            the merchant has no active location.
        ServiceError: If the provider location lookup fails.
    """
    try:
        credential = MerchantCredential.objects.get(pk=merchant_id)
    except MerchantCredential.DoesNotExist as e:
        raise CredentialsNotFound(
            f"No credentials found for merchant {merchant_id}"
        ) from e

    if not credential.access_token:
        raise CredentialsNotFound(f"No access token stored for merchant {merchant_id}")

    location_id = credential.location_id or _resolve_location(credential)

    return MerchantCredentials(
        merchant_id=credential.merchant_id,
        provider=POSProvider(credential.pos_provider),
        access_token=credential.access_token,
        location_id=location_id,
    )


def _resolve_location(credential: MerchantCredential) -> str:
    """Look up the merchant's first active location and cache it."""
    try:
        locations = fetch_locations(
            credential.pos_provider, credential.access_token, credential.merchant_id
        )
    except POSError as e:
        logger.error(
            "Failed to fetch locations for merchant %s: %s",
            credential.merchant_id,
            e,
        )
        raise ServiceError("Failed to fetch location for merchant") from e

    active = [location for location in locations if location.is_active]
    if not active:
        raise CredentialsNotFound("No locations found for merchant")

    location_id = active[0].external_id
    if len(active) > 1:
        logger.info(
            "Merchant %s has %d active locations, using %s",
            credential.merchant_id,
            len(active),
            location_id,
        )

    # Only fill a blank location; a concurrent resolver may have won
    updated = MerchantCredential.objects.filter(
        pk=credential.merchant_id, location_id=""
    ).update(location_id=location_id, updated_at=timezone.now())
    if not updated:
        credential.refresh_from_db(fields=["location_id"])
        return credential.location_id

    logger.info(
        "Cached location %s for merchant %s", location_id, credential.merchant_id
    )
    return location_id
