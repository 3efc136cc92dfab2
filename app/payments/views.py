"""
DRF views for the payments API.

Endpoints:
    POST /api/v1/payments/charge/ - Create a charge
    GET /api/v1/payments/status/{payment_id}/ - Status of one payment
    GET /api/v1/payments/user/ - Caller's payments, newest first

The Stripe webhook endpoint lives in payments.webhooks.views.

Security:
    All endpoints require authentication; payments are only ever visible
    to their owner.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.exceptions import PaymentError
from payments.serializers import (
    ChargeRequestSerializer,
    ChargeResponseSerializer,
    PaymentStatusSerializer,
    PaymentSummarySerializer,
)
from payments.services import ChargeOrchestrator, PaymentQueryService

logger = logging.getLogger(__name__)


class ChargeView(APIView):
    """
    Create a charge for the authenticated user.

    POST /api/v1/payments/charge/

    Request body:
        {"amount": 120.50, "paymentMethod": "CardProvider"}

    Response:
        202 Accepted: {"paymentId", "status", "providerReference",
                       "clientContinuationToken" (card only), "degraded"}
        400 Bad Request: Missing/invalid amount or unsupported method
        401 Unauthorized: Not authenticated
        500 Internal Server Error: Payment couldn't be recorded
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "charges"

    @extend_schema(
        operation_id="create_charge",
        summary="Create a charge",
        description=(
            "Records a pending payment, then charges it through the selected "
            "provider. Card charges return a continuation token the client "
            "uses to confirm the card; wallet charges settle immediately."
        ),
        request=ChargeRequestSerializer,
        responses={
            202: OpenApiResponse(
                response=ChargeResponseSerializer,
                description="Charge accepted",
            ),
            400: OpenApiResponse(
                description="Invalid amount or unsupported payment method",
            ),
            401: OpenApiResponse(description="Authentication required"),
            500: OpenApiResponse(description="Payment could not be recorded"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = ChargeRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = ChargeOrchestrator().create_charge(
                caller=request.user,
                amount=serializer.validated_data["amount"],
                method=serializer.validated_data["paymentMethod"],
            )
        except PaymentError as e:
            logger.info(
                "Charge rejected",
                extra={"user_id": str(request.user.pk), "error_code": e.error_code},
            )
            return Response(e.to_dict(), status=e.http_status)

        data = {
            "paymentId": str(result.payment.id),
            "status": result.payment.status,
            "providerReference": result.provider_reference,
            "degraded": result.degraded,
        }
        if result.client_token:
            data["clientContinuationToken"] = result.client_token

        return Response(data, status=status.HTTP_202_ACCEPTED)


class PaymentStatusView(APIView):
    """
    Status of a payment the caller owns.

    GET /api/v1/payments/status/{payment_id}/

    Response:
        200 OK: {"status", "amount", "paymentMethod", "createdAt", "updatedAt"}
        403 Forbidden: Payment belongs to another user
        404 Not Found: No such payment
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_payment_status",
        summary="Get payment status",
        responses={
            200: OpenApiResponse(
                response=PaymentStatusSerializer,
                description="Payment status",
            ),
            403: OpenApiResponse(description="Not the payment owner"),
            404: OpenApiResponse(description="Payment not found"),
        },
        tags=["Payments"],
    )
    def get(self, request, payment_id):
        try:
            payment = PaymentQueryService.get_status(request.user, payment_id)
        except PaymentError as e:
            return Response(e.to_dict(), status=e.http_status)

        return Response(PaymentStatusSerializer(payment).data)


class UserPaymentListView(APIView):
    """
    The caller's payments, newest first.

    GET /api/v1/payments/user/

    Response:
        200 OK: List of payment summaries (unpaginated)
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_user_payments",
        summary="List my payments",
        responses={
            200: OpenApiResponse(
                response=PaymentSummarySerializer(many=True),
                description="Caller's payments, newest first",
            ),
        },
        tags=["Payments"],
    )
    def get(self, request):
        payments = PaymentQueryService.list_for_owner(request.user)
        return Response(PaymentSummarySerializer(payments, many=True).data)
