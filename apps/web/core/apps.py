"""Django app configuration for shared core pieces."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Core app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.core"
    verbose_name = "Core"

    def ready(self) -> None:
        from apps.web.core import checks  # noqa: F401, PLC0415
