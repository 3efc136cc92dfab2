"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter so error handling,
timeouts, idempotency and logging stay consistent.

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter().create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency="usd",
            idempotency_key="create_intent:<payment_id>:1:<hash>",
        )
    )
"""

from payments.adapters.stripe_adapter import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
)

__all__ = [
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "StripeAdapter",
]
