"""
Payment domain models.

- Payment: A single charge attempt, provisioned before the provider is
  contacted and reconciled with the provider's outcome
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.payment import DEGRADED_REFERENCE_PREFIX, Payment
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES, WebhookEvent

__all__ = [
    "DEGRADED_REFERENCE_PREFIX",
    "MAX_WEBHOOK_RETRIES",
    "Payment",
    "WebhookEvent",
]
