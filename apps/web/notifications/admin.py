"""Admin registration for notification models."""

from django.contrib import admin

from apps.web.notifications.models import UserDevice


@admin.register(UserDevice)
class UserDeviceAdmin(admin.ModelAdmin):
    """Admin for registered push devices."""

    list_display = ["user_id", "device_id", "platform", "last_seen_at"]
    list_filter = ["platform"]
    search_fields = ["user_id", "device_id"]
    readonly_fields = ["created_at", "last_seen_at"]
