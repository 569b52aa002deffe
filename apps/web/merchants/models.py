"""
Merchant models - per-merchant POS credentials.
"""

from django.db import models

from apps.web.core.models import TimestampedModel


class POSProvider(models.TextChoices):
    """Supported POS providers."""

    SQUARE = "square", "Square"
    CLOVER = "clover", "Clover"
    MOCK = "mock", "Mock"


class MerchantCredential(TimestampedModel):
    """
    Access token and location for one merchant's POS account.

    The location is resolved lazily: the first order for a merchant looks
    it up from the provider and caches it here.
    """

    merchant_id = models.CharField(max_length=255, primary_key=True)
    pos_provider = models.CharField(
        max_length=20,
        choices=POSProvider.choices,
        default=POSProvider.SQUARE,
    )
    access_token = models.TextField(help_text="Merchant OAuth access token")
    location_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Location ID in the POS system (blank = resolve on first use)",
    )

    class Meta:
        ordering = ["merchant_id"]

    def __str__(self) -> str:
        return f"{self.merchant_id} ({self.pos_provider})"
