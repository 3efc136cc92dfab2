"""
Card provider backed by Stripe PaymentIntents.

Creates a PaymentIntent for the charge and hands back its client_secret
so the client can complete card authentication. Completion arrives later
through the payment_intent.* webhooks or the pending payment
reconciliation task.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import (
    StripeCardDeclinedError,
    StripeError,
    StripeInsufficientFundsError,
)
from payments.providers.base import (
    ChargeOutcome,
    ChargeRequest,
    Confirmed,
    Declined,
    PaymentProvider,
    Unavailable,
)

logger = logging.getLogger(__name__)

# Stripe errors that mean the card itself was refused. A rejected request
# (amount below Stripe's minimum, reused idempotency key) is not a decline
# and comes back as Unavailable.
DECLINE_ERRORS = (
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to cents, rounding half up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CardProvider(PaymentProvider):
    """
    Hosted card payments via Stripe.

    Args:
        adapter: StripeAdapter to call; a settings-configured one by default
    """

    def __init__(self, adapter: StripeAdapter | None = None):
        self.adapter = adapter if adapter is not None else StripeAdapter()

    @property
    def is_configured(self) -> bool:
        return self.adapter.is_configured

    def charge(self, request: ChargeRequest) -> ChargeOutcome:
        if not self.is_configured:
            logger.warning(
                "Card provider has no Stripe credentials",
                extra={"payment_id": str(request.payment_id)},
            )
            return Unavailable(reason="Stripe is not configured")

        params = CreatePaymentIntentParams(
            amount_cents=to_minor_units(request.amount),
            currency=request.currency,
            idempotency_key=IdempotencyKeyGenerator.generate(
                operation="create_intent",
                entity_id=request.payment_id,
            ),
            metadata={"payment_id": str(request.payment_id)},
        )

        try:
            result = self.adapter.create_payment_intent(
                params, trace_id=str(request.payment_id)
            )
        except DECLINE_ERRORS as e:
            return Declined(reason=e.message)
        except StripeError as e:
            # Non-retryable errors (bad credentials, rejected parameters)
            # won't clear up on their own
            logger.log(
                logging.WARNING if e.is_retryable else logging.ERROR,
                "Card provider unavailable",
                extra={
                    "payment_id": str(request.payment_id),
                    "error_code": e.error_code,
                    "retryable": e.is_retryable,
                },
            )
            return Unavailable(reason=e.message)

        if not result.client_secret:
            return Unavailable(reason="Stripe returned no client secret")

        return Confirmed(
            provider_reference=result.id,
            client_token=result.client_secret,
        )
