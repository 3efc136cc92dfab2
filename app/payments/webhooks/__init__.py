"""
Stripe webhooks: the asynchronous half of card payments.

views.stripe_webhook stores each signed event once and queues it;
handlers.dispatch_webhook (run by payments.tasks.process_webhook_event)
confirms or declines the matching pending Payment.
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.views import stripe_webhook

__all__ = [
    "dispatch_webhook",
    "register_handler",
    "stripe_webhook",
]
