"""
Order status transition rules.

Webhooks can arrive late, twice, or out of order, and the coarse
order.updated event reports OPEN (SUBMITTED) for orders that are already
being prepared. Status therefore only moves forward along

    SUBMITTED < IN_PROGRESS < READY < COMPLETED

with CANCELLED reachable from any non-terminal state the POS knows about.
"""

from apps.web.orders.models import OrderStatus

TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.FAILED)

PROGRESS = (
    OrderStatus.SUBMITTED,
    OrderStatus.IN_PROGRESS,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
)


def should_apply(current: str, incoming: str) -> bool:
    """
    Decide whether a POS-reported status may replace the current one.

    Args:
        current: The order's stored status.
        incoming: Canonical status derived from a webhook.

    Returns:
        True if the order should move to `incoming`.
    """
    if current == incoming:
        return False
    # The POS does not know about the order until capture submits it
    if current == OrderStatus.AUTHORIZED:
        return False
    if current in TERMINAL_STATUSES:
        return False
    # Only this service decides AUTHORIZED and FAILED
    if incoming in (OrderStatus.AUTHORIZED, OrderStatus.FAILED):
        return False
    if incoming == OrderStatus.CANCELLED:
        return True
    if incoming not in PROGRESS or current not in PROGRESS:
        return False
    return PROGRESS.index(incoming) > PROGRESS.index(current)


def can_cancel(current: str) -> bool:
    """Customers may cancel only before the capture window closes."""
    return current == OrderStatus.AUTHORIZED
