"""
Charge orchestrator: turns a charge request into a reconciled Payment.

Steps of create_charge():
    1. Validate    - amount and method, before anything is written
    2. Provision   - commit a PENDING Payment before the provider is called
    3. Dispatch    - call the provider selected by the payment method
    4. Reconcile   - apply the provider's outcome under a row lock

A crash or timeout during dispatch leaves the PENDING record behind for
later reconciliation (webhook, polling task, or confirm()). Provider
failures are never surfaced as failed charges; an Unavailable outcome
either leaves the payment PENDING or, with the degraded fallback enabled,
records it SUCCEEDED under a synthetic "mock_" reference.

Usage:
    from payments.services import ChargeOrchestrator

    result = ChargeOrchestrator().create_charge(
        caller=request.user,
        amount="120.50",
        method="CardProvider",
    )
    result.payment.id      # always set
    result.client_token    # card flow only
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, transaction

from django_fsm import TransitionNotAllowed

from core.services import BaseService

from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    PaymentPersistenceError,
    PaymentValidationError,
    UnsupportedPaymentMethodError,
)
from payments.models import DEGRADED_REFERENCE_PREFIX, Payment
from payments.providers import (
    ChargeOutcome,
    ChargeRequest,
    Completed,
    Confirmed,
    Declined,
    PaymentProvider,
    Unavailable,
    build_default_providers,
)
from payments.state_machines import PaymentMethod

if TYPE_CHECKING:
    from authentication.models import User


# Largest amount a Payment can hold (12 digits, 2 decimal places)
MAX_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")


@dataclass
class ChargeResult:
    """
    What create_charge() hands back to the caller.

    Attributes:
        payment: The reconciled Payment
        provider_reference: Provider id recorded on the payment, if any
        client_token: Continuation token for client-side confirmation (card flow)
        degraded: True when the degraded fallback produced the outcome
    """

    payment: Payment
    provider_reference: str | None = None
    client_token: str | None = None
    degraded: bool = False


class ChargeOrchestrator(BaseService):
    """
    Coordinates charges across payment providers.

    Provider Registry:
        One PaymentProvider per PaymentMethod; every method must be
        covered or construction fails with ImproperlyConfigured.

    Args:
        providers: PaymentMethod -> provider mapping (defaults from settings)
        degraded_fallback: Record unreachable-provider charges as succeeded
            (defaults to PAYMENTS_DEGRADED_FALLBACK_ENABLED)
    """

    def __init__(
        self,
        providers: Mapping[str, PaymentProvider] | None = None,
        degraded_fallback: bool | None = None,
    ):
        self.providers = (
            dict(providers) if providers is not None else build_default_providers()
        )
        missing = [m for m in PaymentMethod.values if m not in self.providers]
        if missing:
            raise ImproperlyConfigured(
                f"No payment provider registered for: {', '.join(missing)}"
            )

        self.degraded_fallback = (
            settings.PAYMENTS_DEGRADED_FALLBACK_ENABLED
            if degraded_fallback is None
            else degraded_fallback
        )

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def validate_amount(amount: Any) -> Decimal:
        """
        Parse and check a charge amount.

        Raises:
            PaymentValidationError: Missing, non-numeric, non-positive,
                too large, or more than two decimal places
        """
        if amount is None or amount == "":
            raise PaymentValidationError(
                "Amount is required",
                details={"field": "amount"},
            )
        if isinstance(amount, bool):
            raise PaymentValidationError(
                "Amount must be a number",
                details={"field": "amount", "value": amount},
            )

        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise PaymentValidationError(
                "Amount must be a number",
                details={"field": "amount", "value": str(amount)},
            )

        if not value.is_finite():
            raise PaymentValidationError(
                "Amount must be a finite number",
                details={"field": "amount", "value": str(amount)},
            )
        if value <= 0:
            raise PaymentValidationError(
                "Amount must be greater than zero",
                details={"field": "amount", "value": str(value)},
            )
        if value > MAX_AMOUNT:
            raise PaymentValidationError(
                f"Amount must not exceed {MAX_AMOUNT}",
                details={"field": "amount", "value": str(value)},
            )
        if value != value.quantize(CENT):
            raise PaymentValidationError(
                "Amount must have at most two decimal places",
                details={"field": "amount", "value": str(value)},
            )

        return value.quantize(CENT)

    @staticmethod
    def validate_method(method: Any) -> PaymentMethod:
        """
        Resolve the client-supplied method to a PaymentMethod.

        Raises:
            PaymentValidationError: Missing method
            UnsupportedPaymentMethodError: Unknown method
        """
        if method is None or method == "":
            raise PaymentValidationError(
                "Payment method is required",
                details={"field": "paymentMethod"},
            )
        if method not in PaymentMethod.values:
            raise UnsupportedPaymentMethodError(
                f"Unsupported payment method: {method}",
                details={
                    "payment_method": str(method),
                    "supported": list(PaymentMethod.values),
                },
            )
        return PaymentMethod(method)

    # =========================================================================
    # Charge
    # =========================================================================

    def create_charge(self, caller: User, amount: Any, method: Any) -> ChargeResult:
        """
        Charge the caller through the provider for `method`.

        Args:
            caller: Authenticated user; becomes the Payment owner
            amount: Amount in major units (str, int, float or Decimal)
            method: PaymentMethod value ("CardProvider" or "WalletProvider")

        Returns:
            ChargeResult for the reconciled payment

        Raises:
            PaymentValidationError: Invalid amount or missing method
            UnsupportedPaymentMethodError: Unknown method
            PaymentPersistenceError: The Payment couldn't be written
        """
        value = self.validate_amount(amount)
        payment_method = self.validate_method(method)

        payment = self._provision(caller, value, payment_method)

        outcome = self._dispatch(payment, self.providers[payment_method])

        return self._reconcile(payment.id, outcome)

    def _provision(
        self, caller: User, amount: Decimal, method: PaymentMethod
    ) -> Payment:
        """Commit the PENDING payment before any provider is contacted."""
        logger = self.get_logger()

        try:
            with self.atomic():
                payment = Payment.objects.create(
                    owner=caller,
                    amount=amount,
                    method=method,
                )
        except DatabaseError as e:
            logger.error(
                "Failed to provision payment",
                extra={
                    "owner_id": str(caller.pk),
                    "amount": str(amount),
                    "payment_method": method.value,
                },
                exc_info=True,
            )
            raise PaymentPersistenceError(
                "Payment could not be recorded. No charge was attempted.",
            ) from e

        logger.info(
            "Provisional payment created",
            extra={
                "payment_id": str(payment.id),
                "owner_id": str(caller.pk),
                "amount": str(amount),
                "payment_method": method.value,
            },
        )
        return payment

    def _dispatch(self, payment: Payment, provider: PaymentProvider) -> ChargeOutcome:
        """Call the provider; unexpected provider errors become Unavailable."""
        request = ChargeRequest(
            payment_id=payment.id,
            amount=payment.amount,
            currency=payment.currency,
        )
        try:
            return provider.charge(request)
        except Exception as e:
            self.get_logger().error(
                f"Provider raised unexpectedly: {type(e).__name__}",
                extra={
                    "payment_id": str(payment.id),
                    "provider": type(provider).__name__,
                },
                exc_info=True,
            )
            return Unavailable(reason=f"Provider error: {type(e).__name__}")

    def _reconcile(self, payment_id: uuid.UUID, outcome: ChargeOutcome) -> ChargeResult:
        """Apply the dispatch outcome to the payment under a row lock."""
        logger = self.get_logger()
        log_context = {
            "payment_id": str(payment_id),
            "outcome": type(outcome).__name__,
        }

        client_token = None
        degraded = False

        try:
            with transaction.atomic():
                payment = Payment.objects.select_for_update().get(id=payment_id)

                if payment.is_terminal:
                    # Confirmed asynchronously before we got here
                    logger.info(
                        "Payment already terminal, skipping reconciliation",
                        extra={**log_context, "status": payment.status},
                    )
                    return ChargeResult(
                        payment=payment,
                        provider_reference=payment.provider_reference,
                        degraded=payment.is_degraded,
                    )

                if isinstance(outcome, Confirmed):
                    payment.provider_reference = outcome.provider_reference
                    client_token = outcome.client_token
                    logger.info(
                        "Charge awaiting client confirmation",
                        extra={
                            **log_context,
                            "provider_reference": outcome.provider_reference,
                        },
                    )

                elif isinstance(outcome, Completed):
                    payment.succeed(provider_reference=outcome.provider_reference)
                    logger.info(
                        "Charge completed",
                        extra={
                            **log_context,
                            "provider_reference": outcome.provider_reference,
                        },
                    )

                elif isinstance(outcome, Declined):
                    payment.fail(
                        reason=outcome.reason,
                        provider_reference=outcome.provider_reference,
                    )
                    logger.info(
                        "Charge declined",
                        extra={**log_context, "reason": outcome.reason},
                    )

                elif isinstance(outcome, Unavailable):
                    if self.degraded_fallback:
                        payment.succeed(
                            provider_reference=f"{DEGRADED_REFERENCE_PREFIX}{uuid.uuid4().hex}",
                            degraded=True,
                        )
                        degraded = True
                        logger.warning(
                            "Provider unavailable, payment recorded as succeeded (degraded)",
                            extra={
                                **log_context,
                                "reason": outcome.reason,
                                "provider_reference": payment.provider_reference,
                                "degraded": True,
                            },
                        )
                    else:
                        logger.warning(
                            "Provider unavailable, payment left pending",
                            extra={
                                **log_context,
                                "reason": outcome.reason,
                                "degraded": False,
                            },
                        )

                else:
                    raise TypeError(f"Unknown charge outcome: {outcome!r}")

                payment.save()
        except DatabaseError as e:
            logger.error(
                "Failed to reconcile payment",
                extra=log_context,
                exc_info=True,
            )
            raise PaymentPersistenceError(
                "Payment outcome could not be recorded",
                details={"payment_id": str(payment_id)},
            ) from e

        return ChargeResult(
            payment=payment,
            provider_reference=payment.provider_reference,
            client_token=client_token,
            degraded=degraded,
        )

    # =========================================================================
    # Asynchronous Reconciliation
    # =========================================================================

    def confirm(
        self, payment_id: uuid.UUID, outcome: Completed | Declined
    ) -> Payment:
        """
        Apply a later provider outcome to a PENDING payment.

        Entry point for webhooks and the pending-payment reconciliation
        task.

        Args:
            payment_id: Payment to confirm
            outcome: Completed (-> SUCCEEDED) or Declined (-> FAILED)

        Returns:
            The updated Payment

        Raises:
            PaymentNotFoundError: No such payment
            InvalidStateTransitionError: Payment is already terminal
        """
        if not isinstance(outcome, (Completed, Declined)):
            raise TypeError("confirm() accepts Completed or Declined outcomes only")

        logger = self.get_logger()
        log_context = {
            "payment_id": str(payment_id),
            "outcome": type(outcome).__name__,
        }

        try:
            with transaction.atomic():
                try:
                    payment = Payment.objects.select_for_update().get(id=payment_id)
                except Payment.DoesNotExist:
                    raise PaymentNotFoundError(
                        f"Payment {payment_id} not found",
                        details={"payment_id": str(payment_id)},
                    )

                if (
                    outcome.provider_reference
                    and payment.provider_reference
                    and outcome.provider_reference != payment.provider_reference
                ):
                    logger.warning(
                        "Confirmation reference differs from recorded reference",
                        extra={
                            **log_context,
                            "recorded_reference": payment.provider_reference,
                            "provider_reference": outcome.provider_reference,
                        },
                    )

                try:
                    if isinstance(outcome, Completed):
                        payment.succeed(provider_reference=outcome.provider_reference)
                    else:
                        payment.fail(
                            reason=outcome.reason,
                            provider_reference=outcome.provider_reference,
                        )
                except TransitionNotAllowed:
                    raise InvalidStateTransitionError(
                        f"Cannot confirm payment in '{payment.status}' state",
                        details={
                            "payment_id": str(payment_id),
                            "current_state": payment.status,
                        },
                    )

                payment.save()
        except DatabaseError as e:
            logger.error("Failed to confirm payment", extra=log_context, exc_info=True)
            raise PaymentPersistenceError(
                "Payment confirmation could not be recorded",
                details={"payment_id": str(payment_id)},
            ) from e

        logger.info(
            "Payment confirmed",
            extra={
                **log_context,
                "status": payment.status,
                "provider_reference": payment.provider_reference,
            },
        )
        return payment
