"""Wallet provider: redirect-style wallet settled immediately server side."""

from __future__ import annotations

import logging
import uuid

from payments.providers.base import (
    ChargeOutcome,
    ChargeRequest,
    Completed,
    PaymentProvider,
)

logger = logging.getLogger(__name__)

WALLET_REFERENCE_PREFIX = "wallet_"


class WalletProvider(PaymentProvider):
    """Settles the charge synchronously; no client continuation needed."""

    def charge(self, request: ChargeRequest) -> ChargeOutcome:
        reference = f"{WALLET_REFERENCE_PREFIX}{uuid.uuid4().hex}"
        logger.info(
            "Wallet charge settled",
            extra={
                "payment_id": str(request.payment_id),
                "provider_reference": reference,
            },
        )
        return Completed(provider_reference=reference)
