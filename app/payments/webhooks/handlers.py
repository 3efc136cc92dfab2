"""
Webhook event handlers for Stripe events.

Handlers are registered per event type and return a ServiceResult; the
processing task marks the WebhookEvent from that result.

Handled events:
    payment_intent.succeeded       -> confirm the payment (SUCCEEDED)
    payment_intent.payment_failed  -> record the attempt error, stay PENDING
    payment_intent.canceled        -> confirm the decline (FAILED)

Unknown event types are acknowledged and ignored.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable

from django.utils import timezone

from core.services import ServiceResult

from payments.exceptions import InvalidStateTransitionError, PaymentError
from payments.models import Payment, WebhookEvent
from payments.providers import Completed, Declined
from payments.services import ChargeOrchestrator
from payments.state_machines import PaymentStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.succeeded")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Returns success for event types without a handler so they aren't
    retried forever.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    return handler(webhook_event)


# =============================================================================
# Helpers
# =============================================================================


def find_payment_for_intent(intent: dict[str, Any]) -> Payment | None:
    """
    Find the Payment a PaymentIntent belongs to.

    Looks up by provider reference first, then by the payment_id the card
    provider stores in the intent's metadata (covers a reference that was
    never recorded).
    """
    intent_id = intent.get("id")
    if intent_id:
        payment = Payment.objects.filter(provider_reference=intent_id).first()
        if payment:
            return payment

    metadata = intent.get("metadata") or {}
    raw_payment_id = metadata.get("payment_id")
    if not raw_payment_id:
        return None

    try:
        payment_id = uuid.UUID(str(raw_payment_id))
    except ValueError:
        return None

    return Payment.objects.filter(id=payment_id).first()


def _payment_for_event(
    intent: dict[str, Any], log_context: dict[str, Any]
) -> ServiceResult[Payment]:
    """Resolve the Payment for an intent event, or a failure to record."""
    if not intent.get("id"):
        logger.error("Webhook has no payment intent id", extra=log_context)
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    payment = find_payment_for_intent(intent)
    if payment is None:
        logger.warning("No payment for payment intent", extra=log_context)
        return ServiceResult.failure(
            f"Payment not found for intent: {intent.get('id')}",
            error_code="PAYMENT_NOT_FOUND",
        )

    log_context["payment_id"] = str(payment.id)
    return ServiceResult.success(payment)


def _apply_outcome(
    webhook_event: WebhookEvent,
    outcome: Completed | Declined,
    target_status: str,
) -> ServiceResult:
    intent = webhook_event.get_object()
    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "payment_intent_id": intent.get("id"),
    }

    lookup = _payment_for_event(intent, log_context)
    if not lookup:
        return lookup
    payment = lookup.data

    if payment.status == target_status:
        logger.info("Payment already confirmed, ignoring duplicate", extra=log_context)
        return ServiceResult.success(payment)

    try:
        payment = ChargeOrchestrator().confirm(payment.id, outcome)
    except InvalidStateTransitionError as e:
        logger.error(
            "Webhook outcome conflicts with payment state",
            extra={**log_context, "current_state": payment.status},
        )
        return ServiceResult.from_exception(e)
    except PaymentError as e:
        return ServiceResult.from_exception(e)

    return ServiceResult.success(payment)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """Client confirmed the card and Stripe captured the charge."""
    intent_id = webhook_event.get_object_id()
    return _apply_outcome(
        webhook_event,
        Completed(provider_reference=intent_id or ""),
        PaymentStatus.SUCCEEDED,
    )


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    A confirmation attempt failed (card declined, authentication failed).

    Not terminal: the intent goes back to requires_payment_method and the
    client can retry with another card, so the payment stays PENDING and
    only the attempt's error is kept in failure_reason. A later
    payment_intent.succeeded or payment_intent.canceled settles it.
    """
    intent = webhook_event.get_object()
    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "payment_intent_id": intent.get("id"),
    }

    lookup = _payment_for_event(intent, log_context)
    if not lookup:
        return lookup
    payment = lookup.data

    if payment.is_terminal:
        logger.info(
            "Attempt failure for settled payment, ignoring",
            extra={**log_context, "current_state": payment.status},
        )
        return ServiceResult.success(payment)

    last_error = intent.get("last_payment_error") or {}
    reason = last_error.get("message") or "Payment failed"

    # Conditional on PENDING so a concurrent confirmation isn't overwritten
    Payment.objects.filter(id=payment.id, status=PaymentStatus.PENDING).update(
        failure_reason=reason,
        updated_at=timezone.now(),
    )
    logger.info(
        "Payment attempt failed, awaiting retry or cancellation",
        extra={**log_context, "failure_reason": reason},
    )
    return ServiceResult.success(Payment.objects.get(id=payment.id))


@register_handler("payment_intent.canceled")
def handle_payment_intent_canceled(webhook_event: WebhookEvent) -> ServiceResult:
    """
    The intent was canceled and can no longer be paid.

    Reason is the last attempt's error when there was one, otherwise
    Stripe's cancellation_reason.
    """
    intent = webhook_event.get_object()
    last_error = intent.get("last_payment_error") or {}
    cancellation_reason = intent.get("cancellation_reason")

    if last_error.get("message"):
        reason = last_error["message"]
    elif cancellation_reason:
        reason = f"Payment intent canceled ({cancellation_reason})"
    else:
        reason = "Payment intent canceled"

    return _apply_outcome(
        webhook_event,
        Declined(reason=reason, provider_reference=intent.get("id")),
        PaymentStatus.FAILED,
    )
