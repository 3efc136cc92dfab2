"""
Stripe webhook endpoint.

Card payments stay PENDING after the charge request until the client
confirms the card. Stripe then reports the result here:

1. Verify the Stripe-Signature header
2. Store the event once per Stripe event id (WebhookEvent)
3. Queue process_webhook_event on Celery
4. Answer 200 right away

Stripe retries anything that isn't a 2xx, so a duplicate delivery is
answered 200 without being processed again.
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tasks import process_webhook_event

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive, store and queue a Stripe event.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Missing/invalid signature or malformed event
    """
    signature = request.headers.get("Stripe-Signature", "")
    if not signature:
        logger.warning("Stripe webhook without signature header")
        return HttpResponse("Missing signature", status=400)

    try:
        event_data = StripeAdapter().verify_webhook_signature(request.body, signature)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Stripe webhook rejected",
            extra={"error_code": e.error_code, "stripe_code": e.stripe_code},
        )
        return HttpResponse("Invalid signature", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")
    if not stripe_event_id or not event_type:
        logger.warning("Stripe webhook missing id or type")
        return HttpResponse("Invalid event", status=400)

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    log_context = {
        "stripe_event_id": stripe_event_id,
        "event_type": event_type,
        "webhook_event_id": str(webhook_event.id),
    }

    if not created and webhook_event.status in (
        WebhookEventStatus.PROCESSED,
        WebhookEventStatus.PROCESSING,
    ):
        logger.info(
            f"Duplicate Stripe webhook ({webhook_event.status})",
            extra=log_context,
        )
        return HttpResponse("Already received", status=200)

    try:
        process_webhook_event.delay(str(webhook_event.id))
    except Exception:
        # Stored as PENDING; retry_failed_webhooks or Stripe's redelivery picks it up
        logger.error("Failed to queue Stripe webhook", extra=log_context, exc_info=True)
    else:
        logger.info("Stripe webhook queued", extra=log_context)

    return HttpResponse("Accepted", status=200)
