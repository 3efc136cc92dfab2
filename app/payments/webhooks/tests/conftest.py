"""
Pytest fixtures for webhook tests.

Provides WebhookEvent objects in each processing state and helpers for
signed webhook requests. Users, clients and payments come from
payments/conftest.py.
"""

import hashlib
import hmac
import json
import time

import pytest
from django.utils import timezone

from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory, build_intent_event

WEBHOOK_SECRET = "whsec_webhook_tests"
WEBHOOK_URL = "/api/v1/payments/webhooks/stripe/"


# =============================================================================
# Signed Request Fixtures
# =============================================================================


@pytest.fixture
def webhook_secret(settings):
    """Configure the Stripe webhook secret for the test."""
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    return WEBHOOK_SECRET


@pytest.fixture
def post_webhook(client, webhook_secret):
    """POST a Stripe-signed event to the webhook endpoint."""

    def _post(event: dict, secret: str | None = None):
        payload = json.dumps(event)
        timestamp = int(time.time())
        digest = hmac.new(
            (secret or webhook_secret).encode(),
            f"{timestamp}.{payload}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return client.post(
            WEBHOOK_URL,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=f"t={timestamp},v1={digest}",
        )

    return _post


# =============================================================================
# Webhook Event Fixtures
# =============================================================================


@pytest.fixture
def succeeded_event(pending_payment):
    """Stored payment_intent.succeeded event for pending_payment."""
    return WebhookEventFactory(
        stripe_event_id="evt_succeeded_123",
        event_type="payment_intent.succeeded",
        payload=build_intent_event(
            "payment_intent.succeeded",
            pending_payment.provider_reference,
            event_id="evt_succeeded_123",
        ),
    )


@pytest.fixture
def failed_event(pending_payment):
    """Stored payment_intent.payment_failed event for pending_payment."""
    return WebhookEventFactory(
        stripe_event_id="evt_failed_123",
        event_type="payment_intent.payment_failed",
        payload=build_intent_event(
            "payment_intent.payment_failed",
            pending_payment.provider_reference,
            event_id="evt_failed_123",
            last_error_message="Your card was declined.",
        ),
    )


@pytest.fixture
def canceled_event(pending_payment):
    """Stored payment_intent.canceled event for pending_payment."""
    return WebhookEventFactory(
        stripe_event_id="evt_canceled_123",
        event_type="payment_intent.canceled",
        payload=build_intent_event(
            "payment_intent.canceled",
            pending_payment.provider_reference,
            event_id="evt_canceled_123",
            cancellation_reason="abandoned",
        ),
    )


@pytest.fixture
def processed_webhook_event(db):
    """WebhookEvent that already ran."""
    return WebhookEventFactory(
        status=WebhookEventStatus.PROCESSED,
        processed_at=timezone.now(),
        retry_count=1,
    )


@pytest.fixture
def processing_webhook_event(db):
    """WebhookEvent a worker is currently handling."""
    return WebhookEventFactory(status=WebhookEventStatus.PROCESSING, retry_count=1)


@pytest.fixture
def failed_webhook_event(db):
    """WebhookEvent whose handler failed once."""
    return WebhookEventFactory(
        status=WebhookEventStatus.FAILED,
        retry_count=1,
        error_message="Payment not found for intent: pi_test_default",
    )
