"""
Notification models - push devices registered by app users.
"""

from django.db import models


class DevicePlatform(models.TextChoices):
    IOS = "ios", "iOS"
    ANDROID = "android", "Android"


class UserDevice(models.Model):
    """
    A OneSignal player registered to an app user.

    A user may have several devices; each device is registered once per user.
    """

    user_id = models.CharField(max_length=255, db_index=True)
    device_id = models.CharField(max_length=255, help_text="OneSignal player ID")
    platform = models.CharField(
        max_length=20, choices=DevicePlatform.choices, default=DevicePlatform.IOS
    )
    created_at = models.DateTimeField(auto_now_add=True)
    last_seen_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "device_id"], name="unique_user_device"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} ({self.platform})"
