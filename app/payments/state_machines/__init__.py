"""
State machine enums for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    TERMINAL_PAYMENT_STATUSES,
    PaymentMethod,
    PaymentStatus,
    WebhookEventStatus,
)

__all__ = [
    "PaymentMethod",
    "PaymentStatus",
    "TERMINAL_PAYMENT_STATUSES",
    "WebhookEventStatus",
]
