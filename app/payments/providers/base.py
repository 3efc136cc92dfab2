"""
Provider contract and charge outcomes.

Every payment provider implements PaymentProvider.charge() and answers
with exactly one outcome from a closed set:

    Confirmed   - accepted, the client must finish confirmation (card flow)
    Completed   - settled synchronously (wallet flow)
    Declined    - the provider refused the charge
    Unavailable - the provider couldn't be reached or rejected our request
                  at the transport/authorization level

Providers never raise for provider-side failures; they translate them
into Declined or Unavailable so the orchestrator can reconcile the
payment from the outcome alone.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Union


# =============================================================================
# Charge Request
# =============================================================================


@dataclass(frozen=True)
class ChargeRequest:
    """
    What a provider needs to charge.

    Attributes:
        payment_id: Provisional Payment id, used for idempotency and metadata
        amount: Positive amount in major currency units
        currency: ISO 4217 currency code (lowercase)
    """

    payment_id: uuid.UUID
    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")


# =============================================================================
# Charge Outcomes
# =============================================================================


@dataclass(frozen=True)
class Confirmed:
    provider_reference: str
    client_token: str


@dataclass(frozen=True)
class Completed:
    provider_reference: str


@dataclass(frozen=True)
class Declined:
    reason: str
    provider_reference: str | None = None


@dataclass(frozen=True)
class Unavailable:
    reason: str


ChargeOutcome = Union[Confirmed, Completed, Declined, Unavailable]


# =============================================================================
# Abstract Provider
# =============================================================================


class PaymentProvider(ABC):
    """
    Abstract base class for payment providers.

    Implementations:
    - CardProvider: Stripe PaymentIntents, client confirms the card
    - WalletProvider: settles immediately server side

    Subclasses must be safe to share between requests (no per-charge state).
    """

    @abstractmethod
    def charge(self, request: ChargeRequest) -> ChargeOutcome:
        """
        Request a charge for the given amount.

        Args:
            request: Payment id, amount and currency

        Returns:
            One of Confirmed, Completed, Declined or Unavailable
        """
