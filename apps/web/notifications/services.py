"""
Notification dispatcher - push notifications through OneSignal.

Dispatch is fire-and-forget from the order's point of view: failures are
logged and reported through the return value, never raised, and order
state is never touched here.
"""

import logging
from typing import TYPE_CHECKING

from django.conf import settings

import httpx

from apps.web.notifications.models import UserDevice

if TYPE_CHECKING:
    from apps.web.orders.models import Order

logger = logging.getLogger(__name__)

ONESIGNAL_URL = "https://onesignal.com/api/v1/notifications"
DEFAULT_SHOP_NAME = "Coffee Shop"
TIMEOUT_SECONDS = 10.0


def build_ready_notification(order: "Order", player_ids: list[str]) -> dict:
    """Build the OneSignal payload for an order that is ready for pickup."""
    shop_name = order.merchant_name or DEFAULT_SHOP_NAME
    return {
        "app_id": settings.ONESIGNAL_APP_ID,
        "include_player_ids": player_ids,
        "headings": {"en": "Order Ready for Pickup!"},
        "contents": {"en": f"Your order from {shop_name} is ready for pickup!"},
        "data": {
            "orderId": order.transaction_id,
            "status": "READY",
            "coffeeShopName": shop_name,
        },
    }


def dispatch(user_id: str, order: "Order") -> bool:
    """
    Notify a user's devices that their order is ready.

    Args:
        user_id: The app user who placed the order.
        order: The order that moved to READY.

    Returns:
        True if OneSignal accepted the notification.
    """
    if not user_id:
        return False

    player_ids = list(
        UserDevice.objects.filter(user_id=user_id).values_list("device_id", flat=True)
    )
    if not player_ids:
        logger.info("No devices registered for user %s, skipping push", user_id)
        return False

    if not settings.ONESIGNAL_APP_ID or not settings.ONESIGNAL_API_KEY:
        logger.error(
            "OneSignal is not configured, cannot notify user %s for order %s",
            user_id,
            order.transaction_id,
        )
        return False

    try:
        response = httpx.post(
            ONESIGNAL_URL,
            json=build_ready_notification(order, player_ids),
            headers={"Authorization": f"Basic {settings.ONESIGNAL_API_KEY}"},
            timeout=TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(
            "Push notification for order %s failed: %s", order.transaction_id, e
        )
        return False

    logger.info(
        "Sent ready notification for order %s to %d device(s)",
        order.transaction_id,
        len(player_ids),
    )
    return True
