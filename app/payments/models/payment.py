"""
Payment model for charge attempts and their lifecycle.

A Payment is written as PENDING before any provider is contacted, so a
crash or timeout during provider communication never loses track of an
attempted charge. Reconciliation then records the provider's reference
and moves the payment to a terminal state (or leaves it pending for an
asynchronous confirmation).

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentMethod, PaymentStatus

    payment = Payment.objects.create(
        owner=user,
        amount=Decimal("120.50"),
        method=PaymentMethod.CARD,
    )

    # State transitions using django-fsm
    payment.succeed(provider_reference="pi_123")
    payment.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel, UUIDPrimaryKeyMixin

from payments.state_machines import (
    TERMINAL_PAYMENT_STATUSES,
    PaymentMethod,
    PaymentStatus,
)

# Synthetic references written by the degraded fallback start with this tag
DEGRADED_REFERENCE_PREFIX = "mock_"


def default_currency() -> str:
    return settings.PAYMENTS_CURRENCY


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single payment attempt made by a user.

    Uses django-fsm for the status state machine. Owner, amount, currency
    and method are written once at creation; only the reconciliation
    fields change afterwards.

    State Flow:
        PENDING -> SUCCEEDED (provider completed, degraded fallback,
                              or asynchronous confirmation)
        PENDING -> FAILED    (provider declined)

    Fields:
        owner: User who requested the charge (from the authenticated caller)
        amount: Positive decimal amount in the configured currency
        currency: ISO 4217 currency code
        method: Provider the caller selected
        provider_reference: Provider-side transaction/intent id
        status: Current FSM state
        is_degraded: Outcome produced by the degraded fallback, not a provider
        failure_reason: Decline reason if the payment failed; while PENDING,
            the error of the last failed card attempt
        completed_at: When the payment reached a terminal state
    """

    # ==========================================================================
    # Ownership
    # ==========================================================================

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="User who requested the charge",
    )

    # ==========================================================================
    # Amount & Method
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Charge amount in major currency units (e.g., 120.50)",
    )

    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code (lowercase)",
    )

    method = models.CharField(
        max_length=32,
        choices=PaymentMethod.choices,
        help_text="Payment provider selected by the caller",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,  # Prevent direct assignment outside transitions
        help_text="Current state of the payment (managed by FSM)",
    )

    # ==========================================================================
    # Provider Reconciliation
    # ==========================================================================

    provider_reference = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Provider-issued transaction or intent id (e.g., pi_xxx)",
    )

    is_degraded = models.BooleanField(
        default=False,
        help_text="True when recorded as succeeded because the provider was unreachable",
    )

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Reason reported by the provider if the payment failed",
    )

    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment reached a terminal state",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(
                fields=["owner", "created_at"],
                name="payment_owner_created_idx",
            ),
            models.Index(
                fields=["status", "created_at"],
                name="payment_status_created_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.status}, {self.amount} {self.currency.upper()})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAYMENT_STATUSES

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.SUCCEEDED,
    )
    def succeed(self, provider_reference: str | None = None, degraded: bool = False):
        """
        Mark the payment as succeeded.

        Transition: PENDING -> SUCCEEDED

        Args:
            provider_reference: Reference to record; keeps the current one if None
            degraded: Whether this success came from the degraded fallback
        """
        if provider_reference:
            self.provider_reference = provider_reference
        self.is_degraded = degraded
        self.failure_reason = None
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def fail(self, reason: str | None = None, provider_reference: str | None = None):
        """
        Mark the payment as failed.

        Transition: PENDING -> FAILED

        Args:
            reason: Decline reason reported by the provider
            provider_reference: Reference to record, if the provider issued one
        """
        if provider_reference:
            self.provider_reference = provider_reference
        self.failure_reason = reason
        self.completed_at = timezone.now()
