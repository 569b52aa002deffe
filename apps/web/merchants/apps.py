"""Django app configuration for merchants module."""

from django.apps import AppConfig


class MerchantsConfig(AppConfig):
    """Merchants app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.merchants"
    verbose_name = "Merchants"
