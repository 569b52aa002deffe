"""
POS webhook processor - reconciles order status from POS events.

Webhooks are delivered at least once and in no particular order, so each
event is applied under a row lock on the Order and only if the transition
rules in orders.status allow it. Replays and stale events are no-ops.
"""

import logging
from enum import Enum

from django.db import transaction
from django.utils import timezone

from siplocal_schemas import OrderCreatedEvent, POSWebhookEvent

from apps.web.notifications.services import dispatch
from apps.web.orders.models import Order, OrderStatus
from apps.web.orders.status import should_apply

logger = logging.getLogger(__name__)


class WebhookOutcome(str, Enum):
    """What a webhook event did to its order."""

    APPLIED = "applied"
    IGNORED = "ignored"  # informational, stale, or duplicate
    UNKNOWN_ORDER = "unknown_order"


def process_webhook_event(event: POSWebhookEvent) -> WebhookOutcome:
    """
    Apply a parsed POS webhook event to its order.

    Args:
        event: Typed event from the provider adapter.

    Returns:
        The outcome of the event.
    """
    if isinstance(event, OrderCreatedEvent):
        logger.info(
            "POS order %s created (%s event %s)",
            event.order_id,
            event.provider.value,
            event.event_id,
        )
        return WebhookOutcome.IGNORED

    if event.status is None:
        logger.info(
            "Ignoring %s state %s for POS order %s",
            event.event_type,
            event.state,
            event.order_id,
        )
        return WebhookOutcome.IGNORED

    incoming = OrderStatus(event.status.value)

    with transaction.atomic():
        order = (
            Order.objects.select_for_update()
            .filter(pos_order_id=event.order_id)
            .first()
        )
        if order is None:
            logger.warning(
                "No order found for POS order %s (event %s), discarding",
                event.order_id,
                event.event_id,
            )
            return WebhookOutcome.UNKNOWN_ORDER

        if not should_apply(order.status, incoming):
            logger.info(
                "Order %s: ignoring %s -> %s from event %s",
                order.transaction_id,
                order.status,
                incoming,
                event.event_id,
            )
            return WebhookOutcome.IGNORED

        previous = order.status
        order.status = incoming
        update_fields = ["status", "updated_at"]
        if incoming == OrderStatus.COMPLETED:
            order.completed_at = timezone.now()
            update_fields.append("completed_at")
        elif incoming == OrderStatus.CANCELLED:
            order.cancelled_at = timezone.now()
            update_fields.append("cancelled_at")
        order.save(update_fields=update_fields)

        if incoming == OrderStatus.READY:
            transaction.on_commit(lambda: _notify_ready(order))

    logger.info(
        "Order %s: %s -> %s (POS order %s)",
        order.transaction_id,
        previous,
        incoming,
        event.order_id,
    )
    return WebhookOutcome.APPLIED


def _notify_ready(order: Order) -> None:
    """Send the ready-for-pickup push. Never raises."""
    try:
        dispatch(order.user_id, order)
    except Exception as e:
        logger.exception(
            "Ready notification for order %s failed: %s", order.transaction_id, e
        )
