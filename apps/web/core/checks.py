"""
Configuration checks run by `manage.py check` and at server startup.

Missing provider keys do not stop the process (local development runs
without them) but are reported so a misconfigured deploy is visible.
"""

from typing import Any

from django.conf import settings
from django.core.checks import Error, Tags, Warning, register

VALID_SQUARE_ENVIRONMENTS = ("sandbox", "production")


@register(Tags.security, deploy=False)
def check_provider_configuration(app_configs: Any = None, **kwargs: Any) -> list:
    """Report missing or invalid provider configuration."""
    messages: list = []

    if settings.SQUARE_ENVIRONMENT not in VALID_SQUARE_ENVIRONMENTS:
        messages.append(
            Error(
                f"SQUARE_ENVIRONMENT must be one of {VALID_SQUARE_ENVIRONMENTS}, "
                f"got {settings.SQUARE_ENVIRONMENT!r}",
                id="siplocal.E001",
            )
        )

    if not settings.SQUARE_WEBHOOK_SIGNATURE_KEY:
        check_class = Warning if settings.DEBUG else Error
        messages.append(
            check_class(
                "SQUARE_WEBHOOK_SIGNATURE_KEY is not set; every webhook will be "
                "rejected with 401",
                id="siplocal.E002",
            )
        )

    if not settings.STRIPE_SECRET_KEY:
        messages.append(
            Warning(
                "STRIPE_SECRET_KEY is not set; stripe_card and apple_pay "
                "payments will fail",
                id="siplocal.W001",
            )
        )

    if not (settings.ONESIGNAL_APP_ID and settings.ONESIGNAL_API_KEY):
        messages.append(
            Warning(
                "ONESIGNAL_APP_ID/ONESIGNAL_API_KEY are not set; order-ready "
                "notifications are disabled",
                id="siplocal.W002",
            )
        )

    if not settings.INTERNAL_API_KEY:
        messages.append(
            Warning(
                "INTERNAL_API_KEY is not set; the /credentials endpoint rejects "
                "every request",
                id="siplocal.W003",
            )
        )

    return messages
