"""
Tests for Stripe webhook handlers.

Tests cover:
- Handler registry and dispatch
- Payment lookup by reference and metadata
- payment_intent.succeeded / payment_failed / canceled
- A failed attempt followed by a successful retry
- Duplicates and conflicting terminal states
"""

from core.services import ServiceResult
from payments.models import Payment
from payments.state_machines import PaymentMethod, PaymentStatus
from payments.tests.factories import PaymentFactory, WebhookEventFactory, build_intent_event
from payments.webhooks.handlers import (
    WEBHOOK_HANDLERS,
    dispatch_webhook,
    find_payment_for_intent,
    register_handler,
)


def intent_event(event_type, intent_id, **kwargs):
    return WebhookEventFactory(
        event_type=event_type,
        payload=build_intent_event(event_type, intent_id, **kwargs),
    )


# =============================================================================
# Registry Tests
# =============================================================================


class TestHandlerRegistry:
    """Tests for register_handler() and dispatch_webhook()."""

    def test_payment_intent_handlers_registered(self):
        assert "payment_intent.succeeded" in WEBHOOK_HANDLERS
        assert "payment_intent.payment_failed" in WEBHOOK_HANDLERS
        assert "payment_intent.canceled" in WEBHOOK_HANDLERS

    def test_unknown_event_type_acknowledged(self, db):
        """Should succeed for types without a handler."""
        event = WebhookEventFactory(event_type="customer.created", payload={})

        result = dispatch_webhook(event)

        assert result.success is True
        assert result.data is None

    def test_register_custom_handler(self, db):
        calls = []

        @register_handler("test.custom_event")
        def handle_custom(webhook_event):
            calls.append(webhook_event.stripe_event_id)
            return ServiceResult.success("handled")

        try:
            event = WebhookEventFactory(event_type="test.custom_event", payload={})
            result = dispatch_webhook(event)
        finally:
            WEBHOOK_HANDLERS.pop("test.custom_event")

        assert result.data == "handled"
        assert calls == [event.stripe_event_id]


# =============================================================================
# Payment Lookup Tests
# =============================================================================


class TestFindPaymentForIntent:
    """Tests for find_payment_for_intent()."""

    def test_by_provider_reference(self, pending_payment):
        assert find_payment_for_intent({"id": "pi_pending_123"}) == pending_payment

    def test_by_metadata_payment_id(self, user):
        """Should fall back to the payment_id stored in the intent metadata."""
        payment = PaymentFactory(owner=user, method=PaymentMethod.CARD)

        found = find_payment_for_intent(
            {"id": "pi_unrecorded", "metadata": {"payment_id": str(payment.id)}}
        )

        assert found == payment

    def test_bad_metadata_id(self, db):
        assert (
            find_payment_for_intent({"id": "pi_x", "metadata": {"payment_id": "nope"}})
            is None
        )

    def test_no_match(self, db):
        assert find_payment_for_intent({"id": "pi_unknown"}) is None


# =============================================================================
# payment_intent.succeeded
# =============================================================================


class TestPaymentIntentSucceeded:
    """Tests for handle_payment_intent_succeeded."""

    def test_confirms_pending_payment(self, succeeded_event, pending_payment):
        result = dispatch_webhook(succeeded_event)

        assert result.success is True
        payment = Payment.objects.get(id=pending_payment.id)
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.completed_at is not None

    def test_records_reference_found_via_metadata(self, user):
        """Should store the intent id when the reference was never recorded."""
        payment = PaymentFactory(owner=user, method=PaymentMethod.CARD)
        event = intent_event(
            "payment_intent.succeeded",
            "pi_late_reference",
            metadata={"payment_id": str(payment.id)},
        )

        result = dispatch_webhook(event)

        assert result.success is True
        payment = Payment.objects.get(id=payment.id)
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.provider_reference == "pi_late_reference"

    def test_duplicate_is_noop(self, user):
        """Should succeed without changes for an already succeeded payment."""
        payment = PaymentFactory(
            owner=user,
            method=PaymentMethod.CARD,
            status=PaymentStatus.SUCCEEDED,
            provider_reference="pi_already_done",
        )
        event = intent_event("payment_intent.succeeded", "pi_already_done")

        result = dispatch_webhook(event)

        assert result.success is True
        assert Payment.objects.get(id=payment.id).status == PaymentStatus.SUCCEEDED

    def test_unknown_intent_fails(self, db):
        event = intent_event("payment_intent.succeeded", "pi_nobody")

        result = dispatch_webhook(event)

        assert result.success is False
        assert result.error_code == "PAYMENT_NOT_FOUND"

    def test_missing_intent_id_fails(self, db):
        event = WebhookEventFactory(
            event_type="payment_intent.succeeded",
            payload={"data": {"object": {}}},
        )

        result = dispatch_webhook(event)

        assert result.success is False
        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"

    def test_conflicting_terminal_state_fails(self, failed_payment):
        """Should not turn a failed payment into a success."""
        event = intent_event("payment_intent.succeeded", failed_payment.provider_reference)

        result = dispatch_webhook(event)

        assert result.success is False
        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert Payment.objects.get(id=failed_payment.id).status == PaymentStatus.FAILED


# =============================================================================
# payment_intent.payment_failed
# =============================================================================


class TestPaymentIntentFailed:
    """Tests for handle_payment_intent_failed."""

    def test_keeps_payment_pending_with_attempt_error(self, failed_event, pending_payment):
        """Should record the attempt error without ending the payment."""
        result = dispatch_webhook(failed_event)

        assert result.success is True
        payment = Payment.objects.get(id=pending_payment.id)
        assert payment.status == PaymentStatus.PENDING
        assert payment.failure_reason == "Your card was declined."
        assert payment.completed_at is None

    def test_default_reason(self, pending_payment):
        event = intent_event("payment_intent.payment_failed", "pi_pending_123")

        dispatch_webhook(event)

        assert Payment.objects.get(id=pending_payment.id).failure_reason == "Payment failed"

    def test_retry_after_failed_attempt_succeeds(self, user):
        """Should settle as SUCCEEDED when the client retries with another card."""
        payment = PaymentFactory(
            owner=user, method=PaymentMethod.CARD, provider_reference="pi_retry"
        )

        failed = dispatch_webhook(
            intent_event(
                "payment_intent.payment_failed",
                "pi_retry",
                last_error_message="Your card has insufficient funds.",
            )
        )
        succeeded = dispatch_webhook(intent_event("payment_intent.succeeded", "pi_retry"))

        assert failed.success is True
        assert succeeded.success is True
        payment = Payment.objects.get(id=payment.id)
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.failure_reason is None

    def test_settled_payment_ignored(self, failed_payment):
        event = intent_event(
            "payment_intent.payment_failed",
            failed_payment.provider_reference,
            last_error_message="Another attempt failed",
        )

        result = dispatch_webhook(event)

        assert result.success is True
        assert (
            Payment.objects.get(id=failed_payment.id).failure_reason
            == "Your card was declined."
        )

    def test_unknown_intent_fails(self, db):
        event = intent_event("payment_intent.payment_failed", "pi_nobody")

        result = dispatch_webhook(event)

        assert result.success is False
        assert result.error_code == "PAYMENT_NOT_FOUND"


# =============================================================================
# payment_intent.canceled
# =============================================================================


class TestPaymentIntentCanceled:
    """Tests for handle_payment_intent_canceled."""

    def test_fails_pending_payment(self, canceled_event, pending_payment):
        result = dispatch_webhook(canceled_event)

        assert result.success is True
        payment = Payment.objects.get(id=pending_payment.id)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Payment intent canceled (abandoned)"
        assert payment.completed_at is not None

    def test_prefers_last_attempt_error(self, pending_payment):
        event = intent_event(
            "payment_intent.canceled",
            "pi_pending_123",
            last_error_message="Your card was declined.",
        )

        dispatch_webhook(event)

        payment = Payment.objects.get(id=pending_payment.id)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Your card was declined."

    def test_duplicate_is_noop(self, failed_payment):
        event = intent_event("payment_intent.canceled", failed_payment.provider_reference)

        result = dispatch_webhook(event)

        assert result.success is True
        assert (
            Payment.objects.get(id=failed_payment.id).failure_reason
            == "Your card was declined."
        )

    def test_succeeded_payment_not_failed(self, user):
        """Should not turn a succeeded payment into a failure."""
        payment = PaymentFactory(
            owner=user,
            method=PaymentMethod.CARD,
            status=PaymentStatus.SUCCEEDED,
            provider_reference="pi_paid",
        )

        result = dispatch_webhook(intent_event("payment_intent.canceled", "pi_paid"))

        assert result.success is False
        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert Payment.objects.get(id=payment.id).status == PaymentStatus.SUCCEEDED
