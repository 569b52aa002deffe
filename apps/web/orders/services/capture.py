"""
Capture scheduler - delayed capture of authorized payments.

Each delayed-capture order gets a CompletionTask row holding its due time.
The process_captures worker polls for due tasks and runs run_capture() on
each. A capture claims its task (SCHEDULED -> RUNNING) under a row lock on
the Order after re-checking that the order is still AUTHORIZED, then talks
to the payment provider and the POS without holding any lock, and finally
records the outcome under the lock again. Cancellation takes the same lock
and refuses a claimed order, so the worker, a manual capture and a
customer cancellation can race safely: whichever commits first wins and
the others no-op.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from siplocal_schemas import CaptureResult

from apps.web.core.exceptions import (
    CaptureFailed,
    OrderNotFound,
    OrderStateError,
    ServiceError,
)
from apps.web.merchants.services import resolve_credentials
from apps.web.orders.models import (
    CompletionTask,
    Order,
    OrderStatus,
    PaymentStatus,
    TaskStatus,
)
from apps.web.orders.status import can_cancel
from apps.web.payments.exceptions import PaymentError
from apps.web.payments.services import cancel_payment, capture_payment
from apps.web.pos.exceptions import POSError
from apps.web.pos.services.order_submission import (
    build_pos_order,
    submit_order_to_pos,
)

logger = logging.getLogger(__name__)


class CaptureOutcome(str, Enum):
    """Result of one capture attempt."""

    CAPTURED = "captured"
    SKIPPED = "skipped"  # order no longer AUTHORIZED, or already claimed
    FAILED = "failed"


# =============================================================================
# Scheduling
# =============================================================================


def schedule_capture(order: Order, now: datetime | None = None) -> CompletionTask:
    """
    Write the capture task for a freshly authorized order.

    Call inside the transaction that creates the order.
    """
    now = now or timezone.now()
    scheduled_for = now + timedelta(seconds=settings.CAPTURE_DELAY_SECONDS)
    return CompletionTask.objects.create(
        order=order,
        scheduled_for=scheduled_for,
        fallback_for=scheduled_for
        + timedelta(seconds=settings.CAPTURE_FALLBACK_GRACE_SECONDS),
    )


def process_due_captures(
    now: datetime | None = None, limit: int = 50
) -> dict[str, int]:
    """
    Run every SCHEDULED capture task that is due.

    RUNNING tasks whose claim is older than CAPTURE_CLAIM_TIMEOUT_SECONDS
    were abandoned by a worker that died mid-capture and are picked up
    again. An attempt that raises is rolled back and the task is moved to
    its fallback time. After CAPTURE_MAX_ATTEMPTS the task and the order
    are marked FAILED.

    Args:
        now: Reference time (defaults to now).
        limit: Maximum number of tasks to run in one batch.

    Returns:
        Counts per outcome, plus "errors" for attempts that raised.
    """
    now = now or timezone.now()
    stale_before = now - timedelta(seconds=settings.CAPTURE_CLAIM_TIMEOUT_SECONDS)
    due = list(
        CompletionTask.objects.filter(
            Q(status=TaskStatus.SCHEDULED, scheduled_for__lte=now)
            | Q(status=TaskStatus.RUNNING, claimed_at__lte=stale_before)
        )
        .order_by("scheduled_for")
        .values_list("order_id", flat=True)[:limit]
    )

    counts = {outcome.value: 0 for outcome in CaptureOutcome}
    counts["errors"] = 0
    for transaction_id in due:
        try:
            outcome = run_capture(transaction_id)
        except Exception as e:
            counts["errors"] += 1
            logger.exception("Capture attempt for %s raised: %s", transaction_id, e)
            _record_attempt_error(transaction_id, str(e))
            continue
        counts[outcome.value] += 1

    return counts


# =============================================================================
# Capture
# =============================================================================


def run_capture(transaction_id: str) -> CaptureOutcome:
    """
    Capture an authorized order and submit it to the POS.

    No-op (SKIPPED) unless the order is still AUTHORIZED and its task is
    not claimed by another capture. Provider failures are terminal: the
    order and its task move to FAILED. Anything else that raises releases
    the claim so the task can be retried.

    Raises:
        OrderNotFound: If no order exists for the transaction ID.
        CredentialsNotFound: If the merchant's credentials are gone.
    """
    order = _claim(transaction_id)
    if order is None:
        return CaptureOutcome.SKIPPED

    try:
        return _capture_claimed(order)
    except Exception:
        _release_claim(transaction_id)
        raise


def capture_order(transaction_id: str) -> Order:
    """
    Capture an order now instead of waiting for the worker.

    Succeeds without doing anything if the order was already captured or
    another capture of it is in flight.

    Raises:
        OrderNotFound: If no order exists for the transaction ID.
        OrderStateError: If the order was cancelled or has failed.
        CaptureFailed: If this capture attempt failed.
    """
    outcome = run_capture(transaction_id)
    order = Order.objects.get(pk=transaction_id)

    if outcome == CaptureOutcome.FAILED:
        raise CaptureFailed(order.error or "Capture failed")
    if outcome == CaptureOutcome.SKIPPED and order.status in (
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    ):
        raise OrderStateError(
            f"Order cannot be captured in status {order.status}",
            details={"status": order.status},
        )
    return order


def _claim(transaction_id: str) -> Order | None:
    """Mark the order's task RUNNING if the order may be captured now."""
    now = timezone.now()
    with transaction.atomic():
        order = _lock_order(transaction_id)
        if order.status != OrderStatus.AUTHORIZED:
            logger.info(
                "Capture for %s skipped: order is %s", transaction_id, order.status
            )
            return None

        task, _ = CompletionTask.objects.select_for_update().get_or_create(
            order=order, defaults={"scheduled_for": now, "fallback_for": now}
        )
        if task.status == TaskStatus.RUNNING and not _claim_expired(task, now):
            logger.info(
                "Capture for %s skipped: already running since %s",
                transaction_id,
                task.claimed_at.isoformat(),
            )
            return None

        task.status = TaskStatus.RUNNING
        task.claimed_at = now
        task.save(update_fields=["status", "claimed_at", "updated_at"])
    return order


def _capture_claimed(order: Order) -> CaptureOutcome:
    transaction_id = order.transaction_id
    credentials = resolve_credentials(order.merchant_id)

    try:
        result = capture_payment(
            order.payment_method, credentials, order.payment_provider_ref
        )
    except PaymentError as e:
        return _finish_failed(transaction_id, f"Capture failed: {e.message}")
    if not result.captured:
        return _finish_failed(
            transaction_id, "Capture failed: provider did not confirm capture"
        )

    try:
        pos_order_id, _ = submit_order_to_pos(
            credentials, build_pos_order(order), order.amount
        )
    except POSError as e:
        logger.error(
            "POS order creation failed for captured order %s (payment %s); "
            "requires manual reconciliation: %s",
            transaction_id,
            order.payment_provider_ref,
            e,
        )
        return _finish_failed(
            transaction_id, f"POS order creation failed: {e}", capture=result
        )

    with transaction.atomic():
        order, task = _lock_claimed(transaction_id)
        if order.status != OrderStatus.AUTHORIZED:
            logger.warning(
                "Order %s was settled by another capture while this one ran; "
                "POS order %s needs manual review",
                transaction_id,
                pos_order_id,
            )
            return CaptureOutcome.SKIPPED
        now = timezone.now()
        order.status = OrderStatus.SUBMITTED
        order.payment_status = PaymentStatus.CAPTURED
        order.receipt_url = result.receipt_url or order.receipt_url
        order.pos_order_id = pos_order_id
        order.submitted_at = now
        order.error = ""
        order.save(
            update_fields=[
                "status",
                "pos_order_id",
                "submitted_at",
                "payment_status",
                "receipt_url",
                "error",
                "updated_at",
            ]
        )
        task.status = TaskStatus.COMPLETED
        task.completed_at = now
        task.error = ""
        task.save(
            update_fields=[
                "status",
                "completed_at",
                "attempts",
                "error",
                "updated_at",
            ]
        )

    logger.info(
        "Order %s captured and submitted: pos_order_id=%s",
        transaction_id,
        pos_order_id,
    )
    return CaptureOutcome.CAPTURED


def _finish_failed(
    transaction_id: str, error: str, capture: CaptureResult | None = None
) -> CaptureOutcome:
    with transaction.atomic():
        order, task = _lock_claimed(transaction_id)
        if order.status != OrderStatus.AUTHORIZED:
            logger.warning(
                "Order %s was settled by another capture while this one ran: %s",
                transaction_id,
                error,
            )
            return CaptureOutcome.SKIPPED
        if capture is not None:
            order.payment_status = PaymentStatus.CAPTURED
            order.receipt_url = capture.receipt_url or order.receipt_url
        _fail(order, task, error)
    return CaptureOutcome.FAILED


def _release_claim(transaction_id: str) -> None:
    CompletionTask.objects.filter(
        order_id=transaction_id, status=TaskStatus.RUNNING
    ).update(status=TaskStatus.SCHEDULED, updated_at=timezone.now())


# =============================================================================
# Cancellation
# =============================================================================


def cancel_order(transaction_id: str) -> Order:
    """
    Cancel an order inside its capture window and void the authorization.

    The cancellation is committed first; the void runs afterwards without
    the order lock. A failed void is logged and the cancellation still
    stands: an uncaptured authorization lapses on its own.

    Raises:
        OrderNotFound: If no order exists for the transaction ID.
        OrderStateError: If the order is no longer AUTHORIZED or its
            capture is already running.
    """
    with transaction.atomic():
        order = _lock_order(transaction_id)
        if not can_cancel(order.status):
            raise OrderStateError(
                f"Order cannot be cancelled in status {order.status}",
                details={"status": order.status},
            )
        if CompletionTask.objects.filter(
            order=order, status=TaskStatus.RUNNING
        ).exists():
            raise OrderStateError(
                "Order is being captured and can no longer be cancelled",
                details={"status": order.status},
            )

        now = timezone.now()
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = now
        order.save(update_fields=["status", "cancelled_at", "updated_at"])
        CompletionTask.objects.filter(
            order=order, status=TaskStatus.SCHEDULED
        ).update(status=TaskStatus.CANCELLED, updated_at=now)

    logger.info("Order %s cancelled", transaction_id)

    try:
        credentials = resolve_credentials(order.merchant_id)
        result = cancel_payment(
            order.payment_method, credentials, order.payment_provider_ref
        )
    except (PaymentError, ServiceError) as e:
        logger.warning(
            "Void of payment %s failed for cancelled order %s: %s",
            order.payment_provider_ref,
            transaction_id,
            e,
        )
        return order

    if result.cancelled:
        order.payment_status = PaymentStatus.CANCELLED
        order.save(update_fields=["payment_status", "updated_at"])
    return order


# =============================================================================
# Helpers
# =============================================================================


def _lock_order(transaction_id: str) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=transaction_id)
    except Order.DoesNotExist as e:
        raise OrderNotFound(f"Order {transaction_id} not found") from e


def _lock_claimed(transaction_id: str) -> tuple[Order, CompletionTask]:
    """Re-lock a claimed order and its task and count the attempt."""
    order = _lock_order(transaction_id)
    task = CompletionTask.objects.select_for_update().get(order=order)
    task.attempts += 1
    return order, task


def _claim_expired(task: CompletionTask, now: datetime) -> bool:
    timeout = timedelta(seconds=settings.CAPTURE_CLAIM_TIMEOUT_SECONDS)
    return task.claimed_at is None or task.claimed_at <= now - timeout


def _fail(order: Order, task: CompletionTask | None, error: str) -> None:
    """Mark the order and its task FAILED. Call under the order lock."""
    now = timezone.now()
    order.status = OrderStatus.FAILED
    order.error = error
    order.save(
        update_fields=["status", "error", "payment_status", "receipt_url", "updated_at"]
    )
    if task:
        task.status = TaskStatus.FAILED
        task.error = error
        task.failed_at = now
        task.save(
            update_fields=["status", "error", "failed_at", "attempts", "updated_at"]
        )
    logger.error("Order %s failed: %s", order.transaction_id, error)


def _record_attempt_error(transaction_id: str, error: str) -> None:
    """Count a raised attempt and move the task to its fallback time."""
    with transaction.atomic():
        task = (
            CompletionTask.objects.select_for_update()
            .select_related("order")
            .filter(order_id=transaction_id, status=TaskStatus.SCHEDULED)
            .first()
        )
        if task is None:
            return

        task.attempts += 1
        task.error = error
        if task.attempts < settings.CAPTURE_MAX_ATTEMPTS:
            task.scheduled_for = task.fallback_for
            task.save(
                update_fields=["attempts", "error", "scheduled_for", "updated_at"]
            )
            logger.warning(
                "Capture for %s rescheduled to fallback at %s",
                transaction_id,
                task.fallback_for.isoformat(),
            )
            return

        order = Order.objects.select_for_update().get(pk=transaction_id)
        if order.status == OrderStatus.AUTHORIZED:
            _fail(
                order, task, f"Capture gave up after {task.attempts} attempts: {error}"
            )
        else:
            task.status = TaskStatus.FAILED
            task.failed_at = timezone.now()
            task.save(
                update_fields=["attempts", "error", "status", "failed_at", "updated_at"]
            )
