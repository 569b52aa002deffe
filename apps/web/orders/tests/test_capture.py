"""Tests for delayed capture, manual capture, and cancellation."""

from datetime import timedelta
from unittest.mock import patch

from django.test import override_settings
from django.utils import timezone

import pytest

from apps.web.core.exceptions import CaptureFailed, OrderNotFound, OrderStateError
from apps.web.merchants.models import POSProvider
from apps.web.orders.models import (
    CompletionTask,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TaskStatus,
)
from apps.web.orders.services import (
    CaptureOutcome,
    cancel_order,
    capture_order,
    process_due_captures,
    run_capture,
)
from apps.web.orders.tests.factories import (
    CompletionTaskFactory,
    OrderFactory,
    OrderItemFactory,
)
from apps.web.payments.adapters import MockPaymentAdapter
from apps.web.payments.services import capture_payment
from apps.web.pos.adapters import MockPOSAdapter


@pytest.fixture
def authorized_order(merchant):
    order = OrderFactory(payment_provider_ref="pi_test_auth")
    OrderItemFactory(order=order, name="Cortado", quantity=2, unit_price=425)
    CompletionTaskFactory(order=order)
    return order


def _patch_payments(adapter: MockPaymentAdapter):
    return patch("apps.web.payments.services.payment_adapter_for", return_value=adapter)


def _patch_pos(adapter: MockPOSAdapter):
    return patch(
        "apps.web.pos.services.order_submission.pos_adapter_for", return_value=adapter
    )


# =============================================================================
# run_capture
# =============================================================================


@pytest.mark.django_db
class TestRunCapture:
    def test_captures_and_submits(self, authorized_order, mock_pos, mock_payments):
        outcome = run_capture(authorized_order.pk)

        assert outcome == CaptureOutcome.CAPTURED
        authorized_order.refresh_from_db()
        assert authorized_order.status == OrderStatus.SUBMITTED
        assert authorized_order.payment_status == PaymentStatus.CAPTURED
        assert authorized_order.pos_order_id in mock_pos.orders
        assert authorized_order.submitted_at is not None
        assert mock_payments.captured == ["pi_test_auth"]

        task = authorized_order.completion_task
        task.refresh_from_db()
        assert task.status == TaskStatus.COMPLETED
        assert task.attempts == 1
        assert task.completed_at is not None

    def test_pos_order_is_built_from_stored_items(
        self, authorized_order, mock_pos, mock_payments
    ):
        run_capture(authorized_order.pk)
        authorized_order.refresh_from_db()

        pos_order = mock_pos.orders[authorized_order.pos_order_id]
        assert pos_order.reference_id == authorized_order.pk
        assert [(i.name, i.quantity, i.unit_price) for i in pos_order.items] == [
            ("Cortado", 2, 425)
        ]
        assert mock_pos.order_locations[authorized_order.pos_order_id] == "loc-main"

    def test_records_external_payment_for_stripe(
        self, authorized_order, mock_pos, mock_payments
    ):
        run_capture(authorized_order.pk)
        authorized_order.refresh_from_db()

        assert len(mock_pos.external_payments) == 1
        assert mock_pos.external_payments[0].order_id == authorized_order.pos_order_id
        assert mock_pos.external_payments[0].amount == authorized_order.amount

    def test_square_card_capture_links_payment(
        self, square_merchant, mock_pos, mock_payments
    ):
        order = OrderFactory(
            merchant_id="square-merchant",
            pos_provider=POSProvider.SQUARE,
            location_id="L-SQUARE-1",
            payment_method=PaymentMethod.CARD,
        )
        CompletionTaskFactory(order=order)

        assert run_capture(order.pk) == CaptureOutcome.CAPTURED

        order.refresh_from_db()
        assert len(mock_pos.external_payments) == 1
        assert mock_pos.external_payments[0].order_id == order.pos_order_id
        assert mock_pos.external_payments[0].amount == order.amount

    def test_second_run_is_a_noop(self, authorized_order, mock_pos, mock_payments):
        run_capture(authorized_order.pk)

        assert run_capture(authorized_order.pk) == CaptureOutcome.SKIPPED
        assert len(mock_pos.orders) == 1
        assert mock_payments.captured == ["pi_test_auth"]

    def test_skips_cancelled_order(self, merchant, mock_pos, mock_payments):
        order = OrderFactory(status=OrderStatus.CANCELLED)

        assert run_capture(order.pk) == CaptureOutcome.SKIPPED
        assert mock_pos.orders == {}
        assert mock_payments.captured == []

    def test_capture_failure_fails_order_without_pos_order(
        self, authorized_order, mock_pos
    ):
        with _patch_payments(MockPaymentAdapter(fail_capture=True)):
            outcome = run_capture(authorized_order.pk)

        assert outcome == CaptureOutcome.FAILED
        authorized_order.refresh_from_db()
        assert authorized_order.status == OrderStatus.FAILED
        assert authorized_order.payment_status == PaymentStatus.AUTHORIZED
        assert authorized_order.error.startswith("Capture failed")
        assert authorized_order.completion_task.status == TaskStatus.FAILED
        assert mock_pos.orders == {}

    def test_pos_failure_after_capture(self, authorized_order, mock_payments):
        with _patch_pos(MockPOSAdapter(fail_orders=True)):
            outcome = run_capture(authorized_order.pk)

        assert outcome == CaptureOutcome.FAILED
        authorized_order.refresh_from_db()
        assert authorized_order.status == OrderStatus.FAILED
        assert authorized_order.payment_status == PaymentStatus.CAPTURED
        assert authorized_order.pos_order_id is None
        assert mock_payments.captured == ["pi_test_auth"]

    def test_unknown_order(self, mock_pos, mock_payments):
        with pytest.raises(OrderNotFound):
            run_capture("missing")

    def test_claimed_task_is_not_captured_twice(
        self, authorized_order, mock_pos, mock_payments
    ):
        CompletionTask.objects.filter(order=authorized_order).update(
            status=TaskStatus.RUNNING, claimed_at=timezone.now()
        )

        assert run_capture(authorized_order.pk) == CaptureOutcome.SKIPPED
        assert mock_payments.captured == []

    def test_unexpected_error_releases_claim(
        self, authorized_order, mock_pos, mock_payments
    ):
        with (
            patch(
                "apps.web.orders.services.capture.submit_order_to_pos",
                side_effect=RuntimeError("connection reset"),
            ),
            pytest.raises(RuntimeError),
        ):
            run_capture(authorized_order.pk)

        authorized_order.refresh_from_db()
        task = authorized_order.completion_task
        task.refresh_from_db()
        assert authorized_order.status == OrderStatus.AUTHORIZED
        assert task.status == TaskStatus.SCHEDULED


# =============================================================================
# process_due_captures
# =============================================================================


@pytest.mark.django_db
class TestProcessDueCaptures:
    def test_runs_only_due_tasks(self, merchant, mock_pos, mock_payments):
        due = CompletionTaskFactory()
        later = CompletionTaskFactory(
            scheduled_for=timezone.now() + timedelta(seconds=30)
        )

        counts = process_due_captures()

        assert counts == {"captured": 1, "skipped": 0, "failed": 0, "errors": 0}
        due.refresh_from_db()
        later.refresh_from_db()
        assert due.status == TaskStatus.COMPLETED
        assert later.status == TaskStatus.SCHEDULED

    def test_ignores_finished_tasks(self, merchant, mock_pos, mock_payments):
        CompletionTaskFactory(status=TaskStatus.CANCELLED)
        CompletionTaskFactory(status=TaskStatus.COMPLETED)

        counts = process_due_captures()

        assert counts["captured"] == 0
        assert mock_payments.captured == []

    @override_settings(CAPTURE_MAX_ATTEMPTS=2)
    def test_error_reschedules_to_fallback(self, merchant, mock_pos, mock_payments):
        task = CompletionTaskFactory()

        with patch(
            "apps.web.orders.services.capture.run_capture",
            side_effect=RuntimeError("database went away"),
        ):
            counts = process_due_captures()

        assert counts["errors"] == 1
        task.refresh_from_db()
        assert task.status == TaskStatus.SCHEDULED
        assert task.attempts == 1
        assert task.scheduled_for == task.fallback_for
        assert "database went away" in task.error

    @override_settings(CAPTURE_MAX_ATTEMPTS=2)
    def test_gives_up_after_max_attempts(self, merchant, mock_pos, mock_payments):
        task = CompletionTaskFactory(attempts=1)

        with patch(
            "apps.web.orders.services.capture.run_capture",
            side_effect=RuntimeError("timeout"),
        ):
            process_due_captures()

        task.refresh_from_db()
        task.order.refresh_from_db()
        assert task.status == TaskStatus.FAILED
        assert task.attempts == 2
        assert task.order.status == OrderStatus.FAILED

    def test_fallback_run_captures(self, merchant, mock_pos, mock_payments):
        task = CompletionTaskFactory(attempts=1)

        process_due_captures(now=task.fallback_for)

        task.refresh_from_db()
        assert task.status == TaskStatus.COMPLETED
        assert task.attempts == 2

    @override_settings(CAPTURE_CLAIM_TIMEOUT_SECONDS=60)
    def test_abandoned_claim_is_picked_up(self, merchant, mock_pos, mock_payments):
        abandoned = CompletionTaskFactory(
            status=TaskStatus.RUNNING,
            claimed_at=timezone.now() - timedelta(minutes=5),
        )
        running = CompletionTaskFactory(
            status=TaskStatus.RUNNING, claimed_at=timezone.now()
        )

        counts = process_due_captures()

        assert counts["captured"] == 1
        abandoned.refresh_from_db()
        running.refresh_from_db()
        assert abandoned.status == TaskStatus.COMPLETED
        assert running.status == TaskStatus.RUNNING


# =============================================================================
# capture_order
# =============================================================================


@pytest.mark.django_db
class TestCaptureOrder:
    def test_captures_authorized_order(self, authorized_order, mock_pos, mock_payments):
        order = capture_order(authorized_order.pk)

        assert order.status == OrderStatus.SUBMITTED
        assert order.pos_order_id in mock_pos.orders

    def test_already_submitted_succeeds(self, merchant, mock_pos, mock_payments):
        order = OrderFactory(status=OrderStatus.SUBMITTED, pos_order_id="pos-1")

        result = capture_order(order.pk)

        assert result.status == OrderStatus.SUBMITTED
        assert result.pos_order_id == "pos-1"
        assert mock_payments.captured == []

    def test_cancelled_order_is_rejected(self, merchant, mock_pos, mock_payments):
        order = OrderFactory(status=OrderStatus.CANCELLED)

        with pytest.raises(OrderStateError):
            capture_order(order.pk)

    def test_failure_raises_capture_failed(self, authorized_order, mock_pos):
        with (
            _patch_payments(MockPaymentAdapter(fail_capture=True)),
            pytest.raises(CaptureFailed),
        ):
            capture_order(authorized_order.pk)


# =============================================================================
# cancel_order
# =============================================================================


@pytest.mark.django_db
class TestCancelOrder:
    def test_cancels_and_voids(self, authorized_order, mock_pos, mock_payments):
        order = cancel_order(authorized_order.pk)

        assert order.status == OrderStatus.CANCELLED
        assert order.payment_status == PaymentStatus.CANCELLED
        assert order.cancelled_at is not None
        assert mock_payments.cancelled == ["pi_test_auth"]

        authorized_order.completion_task.refresh_from_db()
        assert authorized_order.completion_task.status == TaskStatus.CANCELLED

    def test_cancel_wins_over_later_capture(
        self, authorized_order, mock_pos, mock_payments
    ):
        cancel_order(authorized_order.pk)

        assert run_capture(authorized_order.pk) == CaptureOutcome.SKIPPED
        assert process_due_captures()["captured"] == 0
        assert mock_pos.orders == {}
        assert mock_payments.captured == []

    def test_capture_wins_over_later_cancel(
        self, authorized_order, mock_pos, mock_payments
    ):
        run_capture(authorized_order.pk)

        with pytest.raises(OrderStateError) as exc_info:
            cancel_order(authorized_order.pk)

        assert exc_info.value.http_status == 409
        authorized_order.refresh_from_db()
        assert authorized_order.status == OrderStatus.SUBMITTED
        assert mock_payments.cancelled == []

    def test_cancel_is_refused_while_capture_runs(
        self, authorized_order, mock_pos, mock_payments
    ):
        refused = []

        def _capture_while_customer_cancels(*args):
            try:
                cancel_order(authorized_order.pk)
            except OrderStateError as e:
                refused.append(e)
            return capture_payment(*args)

        with patch(
            "apps.web.orders.services.capture.capture_payment",
            side_effect=_capture_while_customer_cancels,
        ):
            outcome = run_capture(authorized_order.pk)

        assert outcome == CaptureOutcome.CAPTURED
        assert len(refused) == 1
        assert refused[0].http_status == 409
        authorized_order.refresh_from_db()
        assert authorized_order.status == OrderStatus.SUBMITTED
        assert mock_payments.cancelled == []

    def test_void_failure_still_cancels(self, authorized_order, mock_pos):
        with _patch_payments(MockPaymentAdapter(fail_cancel=True)):
            order = cancel_order(authorized_order.pk)

        assert order.status == OrderStatus.CANCELLED
        assert order.payment_status == PaymentStatus.AUTHORIZED

    def test_unknown_order(self):
        with pytest.raises(OrderNotFound):
            cancel_order("missing")
