"""
Payment services.

- ChargeOrchestrator: create_charge() and confirm()
- PaymentQueryService: owner-scoped status lookup and listing

Usage:
    from payments.services import ChargeOrchestrator, PaymentQueryService

    result = ChargeOrchestrator().create_charge(user, "49.99", "WalletProvider")
    payment = PaymentQueryService.get_status(user, result.payment.id)
"""

from payments.services.charge_orchestrator import ChargeOrchestrator, ChargeResult
from payments.services.payment_queries import PaymentQueryService

__all__ = [
    "ChargeOrchestrator",
    "ChargeResult",
    "PaymentQueryService",
]
