"""
Celery tasks for payment processing.

This module provides async tasks for:
- Processing stored Stripe webhook events
- Retrying failed (or never queued) webhook events
- Resetting webhook events stuck in PROCESSING
- Reconciling card payments left PENDING against Stripe

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))

The periodic tasks are scheduled with django-celery-beat (see the
payments schedule migration).
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from payments.adapters import StripeAdapter
from payments.exceptions import InvalidStateTransitionError, StripeError
from payments.models import MAX_WEBHOOK_RETRIES, Payment, WebhookEvent
from payments.providers import Completed, Declined
from payments.services import ChargeOrchestrator
from payments.state_machines import PaymentMethod, PaymentStatus, WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

STUCK_PROCESSING_THRESHOLD_MINUTES = 30
UNQUEUED_PENDING_THRESHOLD_MINUTES = 5
WEBHOOK_RETRY_BATCH_SIZE = 100
RECONCILE_BATCH_SIZE = 100

# PaymentIntent statuses that settle a pending payment
INTENT_SUCCEEDED = "succeeded"
INTENT_CANCELED = "canceled"


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Run the handler for a stored Stripe event.

    Marks the event PROCESSING, dispatches it by type, then marks it
    PROCESSED or FAILED. Unexpected exceptions are re-raised so Celery
    retries with backoff.

    Args:
        webhook_event_id: UUID of the WebhookEvent

    Returns:
        Dict with the processing status
    """
    # Import here to avoid circular imports
    from payments.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    log_context = {
        "webhook_event_id": str(webhook_event_id),
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
    }

    if webhook_event.is_processed:
        logger.info("WebhookEvent already processed, skipping", extra=log_context)
        return {"status": "already_processed", "webhook_event_id": str(webhook_event_id)}

    webhook_event.mark_processing()
    webhook_event.save()

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)
    except Exception as e:
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save()
        logger.exception(
            "Webhook processing raised",
            extra={**log_context, "retry_count": webhook_event.retry_count},
        )
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save()
        logger.info("Webhook processed", extra=log_context)
        return {"status": "processed", "webhook_event_id": str(webhook_event_id)}

    error_msg = result.error or "Handler returned failure"
    webhook_event.mark_failed(error_msg)
    webhook_event.save()
    logger.warning(
        f"Webhook handler failed: {error_msg}",
        extra={**log_context, "error_code": result.error_code},
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": error_msg,
    }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Re-queue webhook events that need another attempt.

    Picks up FAILED events under MAX_WEBHOOK_RETRIES and PENDING events
    that were stored but never queued (broker down at receipt).

    Returns:
        Dict with count of webhooks queued
    """
    unqueued_before = timezone.now() - timedelta(
        minutes=UNQUEUED_PENDING_THRESHOLD_MINUTES
    )

    failed = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    )
    unqueued = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PENDING,
        created_at__lt=unqueued_before,
    )
    candidates = (failed | unqueued).order_by("created_at")[:WEBHOOK_RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in candidates:
        try:
            process_webhook_event.delay(str(webhook.id))
        except Exception:
            logger.error(
                "Failed to queue webhook for retry",
                extra={"webhook_event_id": str(webhook.id)},
                exc_info=True,
            )
            continue

        queued_count += 1
        logger.info(
            "Queued webhook for retry",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "retry_count": webhook.retry_count,
            },
        )

    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Reset webhook events stuck in PROCESSING to FAILED.

    Covers workers that died mid-event; retry_failed_webhooks then
    picks them up again.

    Returns:
        Dict with count of webhooks reset
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        stuck_since = webhook.updated_at
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "stuck_since": stuck_since.isoformat(),
            },
        )

    return {"reset_count": reset_count}


# =============================================================================
# Payment Reconciliation
# =============================================================================


@shared_task
def reconcile_pending_payments() -> dict:
    """
    Settle card payments left PENDING by polling Stripe.

    Covers confirmations whose webhook never arrived and charges whose
    provider call timed out. Only payments older than
    PAYMENTS_PENDING_RECONCILE_AFTER_MINUTES are considered.

    - Intent succeeded -> confirm(Completed)
    - Intent canceled  -> confirm(Declined)
    - Otherwise the payment stays PENDING

    Payments without a provider reference are matched to their intent
    through the payment_id metadata and the reference is recorded; those
    with no intent at Stripe are logged for manual review.

    Returns:
        Dict with counts per outcome
    """
    counts = {
        "checked": 0,
        "succeeded": 0,
        "failed": 0,
        "still_pending": 0,
        "recovered_references": 0,
        "unreferenced": 0,
        "errors": 0,
    }

    adapter = StripeAdapter()
    if not adapter.is_configured:
        logger.warning("Stripe not configured, skipping pending payment reconciliation")
        return {**counts, "status": "skipped"}

    threshold = timezone.now() - timedelta(
        minutes=settings.PAYMENTS_PENDING_RECONCILE_AFTER_MINUTES
    )
    stale_payments = Payment.objects.filter(
        status=PaymentStatus.PENDING,
        method=PaymentMethod.CARD,
        created_at__lt=threshold,
    ).order_by("created_at")[:RECONCILE_BATCH_SIZE]

    orchestrator = ChargeOrchestrator()

    for payment in stale_payments:
        counts["checked"] += 1
        log_context = {
            "payment_id": str(payment.id),
            "provider_reference": payment.provider_reference,
        }

        try:
            if payment.provider_reference:
                intent = adapter.retrieve_payment_intent(
                    payment.provider_reference, trace_id=str(payment.id)
                )
            else:
                intent = adapter.find_payment_intent_for_payment(
                    payment.id, trace_id=str(payment.id)
                )
        except StripeError as e:
            counts["errors"] += 1
            logger.warning(
                "Could not fetch payment intent",
                extra={**log_context, "error_code": e.error_code},
            )
            continue

        if intent is None:
            # Stripe never created an intent for it
            counts["unreferenced"] += 1
            logger.warning(
                "Pending payment has no payment intent, needs manual review",
                extra=log_context,
            )
            continue

        if not payment.provider_reference:
            counts["recovered_references"] += 1
            logger.info(
                "Found payment intent by metadata",
                extra={**log_context, "payment_intent_id": intent.id},
            )

        if intent.status == INTENT_SUCCEEDED:
            outcome = Completed(provider_reference=intent.id)
        elif intent.status == INTENT_CANCELED:
            outcome = Declined(
                reason=intent.last_error_message or "Payment intent canceled",
                provider_reference=intent.id,
            )
        else:
            counts["still_pending"] += 1
            if not payment.provider_reference:
                Payment.objects.filter(
                    id=payment.id, status=PaymentStatus.PENDING
                ).update(provider_reference=intent.id, updated_at=timezone.now())
            continue

        try:
            orchestrator.confirm(payment.id, outcome)
        except InvalidStateTransitionError:
            # A webhook settled it between the query and the lock
            logger.info("Payment settled concurrently", extra=log_context)
            continue

        counts["succeeded" if isinstance(outcome, Completed) else "failed"] += 1

    logger.info("Pending payment reconciliation finished", extra=counts)
    return counts
