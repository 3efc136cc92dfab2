"""
DRF serializers for the payments API.

Request serializers only check shape (fields present, right JSON type).
Amount and method rules live in ChargeOrchestrator so every caller gets
the same validation and error codes.

Wire names are camelCase (paymentId, paymentMethod, createdAt, ...).
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payment


class ChargeRequestSerializer(serializers.Serializer):
    """
    Body of POST /api/v1/payments/charge/.

    Usage:
        serializer = ChargeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        orchestrator.create_charge(
            caller=request.user,
            amount=serializer.validated_data["amount"],
            method=serializer.validated_data["paymentMethod"],
        )
    """

    amount = serializers.CharField(
        help_text="Amount to charge in major units, e.g. 120.50",
    )
    paymentMethod = serializers.CharField(
        max_length=64,
        help_text="Payment provider: CardProvider or WalletProvider",
    )


class ChargeResponseSerializer(serializers.Serializer):
    """Acknowledgement returned by the charge endpoint (202)."""

    paymentId = serializers.UUIDField(read_only=True)
    status = serializers.CharField(read_only=True)
    providerReference = serializers.CharField(read_only=True, allow_null=True)
    clientContinuationToken = serializers.CharField(
        read_only=True,
        required=False,
        help_text="Card flow only: token the client uses to confirm the card",
    )
    degraded = serializers.BooleanField(read_only=True)


class PaymentStatusSerializer(serializers.ModelSerializer):
    """Status lookup for a single payment."""

    status = serializers.CharField(read_only=True)
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        coerce_to_string=False,
        read_only=True,
    )
    paymentMethod = serializers.CharField(source="method", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Payment
        fields = ["status", "amount", "paymentMethod", "createdAt", "updatedAt"]
        read_only_fields = fields


class PaymentSummarySerializer(PaymentStatusSerializer):
    """One entry of the caller's payment history."""

    paymentId = serializers.UUIDField(source="id", read_only=True)
    providerReference = serializers.CharField(
        source="provider_reference", read_only=True, allow_null=True
    )
    degraded = serializers.BooleanField(source="is_degraded", read_only=True)

    class Meta(PaymentStatusSerializer.Meta):
        fields = [
            "paymentId",
            "status",
            "amount",
            "paymentMethod",
            "providerReference",
            "degraded",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields
