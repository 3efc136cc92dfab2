"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import PaymentFactory, WebhookEventFactory

    payment = PaymentFactory()
    card_payment = PaymentFactory(method=PaymentMethod.CARD, provider_reference="pi_123")
    settled = PaymentFactory(status=PaymentStatus.SUCCEEDED)

Note:
    Payment.status is a protected FSM field. It can be set once at
    creation; afterwards only transitions change it, and
    refresh_from_db() isn't available. Re-fetch with
    Payment.objects.get(id=...) instead.
"""

import uuid
from decimal import Decimal

import factory

from authentication.tests.factories import UserFactory
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentMethod, PaymentStatus, WebhookEventStatus


class PaymentFactory(factory.django.DjangoModelFactory):
    """
    Factory for Payment instances.

    Default creates a PENDING wallet payment of 49.99 with no provider
    reference.
    """

    class Meta:
        model = Payment

    owner = factory.SubFactory(UserFactory)
    amount = Decimal("49.99")
    currency = "usd"
    method = PaymentMethod.WALLET
    status = PaymentStatus.PENDING
    provider_reference = None


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for WebhookEvent instances.

    Default creates a PENDING payment_intent.succeeded event.

    Example:
        event = WebhookEventFactory(
            event_type="payment_intent.payment_failed",
            payload=build_intent_event("payment_intent.payment_failed", "pi_123"),
        )
    """

    class Meta:
        model = WebhookEvent

    stripe_event_id = factory.LazyFunction(lambda: f"evt_{uuid.uuid4().hex[:24]}")
    event_type = "payment_intent.succeeded"
    status = WebhookEventStatus.PENDING
    retry_count = 0
    payload = factory.LazyAttribute(
        lambda o: build_intent_event(o.event_type, "pi_test_default", o.stripe_event_id)
    )


# Intent status Stripe reports alongside each event type
INTENT_STATUS_BY_EVENT = {
    "payment_intent.succeeded": "succeeded",
    "payment_intent.canceled": "canceled",
}


def build_intent_event(
    event_type: str,
    intent_id: str,
    event_id: str | None = None,
    metadata: dict | None = None,
    last_error_message: str | None = None,
    cancellation_reason: str | None = None,
) -> dict:
    """Build a Stripe payment_intent.* event payload."""
    intent = {
        "id": intent_id,
        "object": "payment_intent",
        "status": INTENT_STATUS_BY_EVENT.get(event_type, "requires_payment_method"),
        "metadata": metadata or {},
    }
    if cancellation_reason:
        intent["cancellation_reason"] = cancellation_reason
    if last_error_message:
        intent["last_payment_error"] = {"message": last_error_message}

    return {
        "id": event_id or f"evt_{uuid.uuid4().hex[:24]}",
        "object": "event",
        "type": event_type,
        "data": {"object": intent},
    }
