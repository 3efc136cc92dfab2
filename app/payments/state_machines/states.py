"""
State and choice enums for payment models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment States:
    pending → succeeded   (provider completed, degraded fallback, or
                           asynchronous confirmation)
    pending → failed      (provider declined)
    succeeded, failed are terminal

WebhookEvent States:
    pending → processing → processed
    pending → processing → failed (can retry)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal states: SUCCEEDED, FAILED

    Every Payment is provisioned as PENDING before the provider is
    contacted; reconciliation moves it to a terminal state or leaves it
    pending for a later confirmation.
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class PaymentMethod(models.TextChoices):
    """
    Payment providers a caller may charge through.

    The stored value is the wire value clients send as "paymentMethod".
    Every member must have a provider registered with the orchestrator.
    """

    CARD = "CardProvider", "Card"
    WALLET = "WalletProvider", "Wallet"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


TERMINAL_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.SUCCEEDED, PaymentStatus.FAILED}
)


__all__ = [
    "PaymentMethod",
    "PaymentStatus",
    "TERMINAL_PAYMENT_STATUSES",
    "WebhookEventStatus",
]
