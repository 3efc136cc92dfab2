"""
Owner-scoped payment queries.

Callers only ever see their own payments: status lookups check ownership
after existence, listings are filtered by owner.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from core.services import BaseService

from payments.exceptions import PaymentAccessDeniedError, PaymentNotFoundError
from payments.models import Payment

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User


class PaymentQueryService(BaseService):
    """Read-only access to payments, enforcing ownership."""

    @classmethod
    def get_status(cls, caller: User, payment_id: uuid.UUID) -> Payment:
        """
        Fetch a payment the caller owns.

        Raises:
            PaymentNotFoundError: No payment with this id
            PaymentAccessDeniedError: Payment belongs to someone else
        """
        try:
            payment = Payment.objects.get(id=payment_id)
        except Payment.DoesNotExist:
            raise PaymentNotFoundError(
                f"Payment {payment_id} not found",
                details={"payment_id": str(payment_id)},
            )

        if payment.owner_id != caller.pk:
            cls.get_logger().warning(
                "Payment access denied",
                extra={"payment_id": str(payment_id), "caller_id": str(caller.pk)},
            )
            raise PaymentAccessDeniedError(
                "You do not have access to this payment",
                details={"payment_id": str(payment_id)},
            )

        return payment

    @classmethod
    def list_for_owner(cls, caller: User) -> QuerySet[Payment]:
        """All of the caller's payments, newest first."""
        return Payment.objects.filter(owner=caller).order_by("-created_at", "-id")
