"""Payment API views.

The checkout endpoints act for the authenticated customer; the webhook
is unauthenticated at the HTTP layer and authenticated by its HMAC.
"""

from __future__ import annotations

from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.conf import CommerceConfig
from modules.core.responses import envelope
from modules.core.validation import parse_dto
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.views import build_order_service
from modules.payments.dtos import PaymentOrderDTO, VerifyPaymentDTO
from modules.payments.services import PaymentService

SIGNATURE_HEADER = "X-Razorpay-Signature"


def build_payment_service() -> PaymentService:
    return PaymentService(
        order_repository=OrderDjangoRepository(),
        order_service=build_order_service(),
        config=CommerceConfig.from_settings(),
    )


def _order_summary(order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "order_status": order.status,
        "payment_method": order.payment.method,
        "payment_status": order.payment.status,
    }


class CreatePaymentOrderView(APIView):
    """POST /api/v1/payments/create-order/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        dto = parse_dto(PaymentOrderDTO, request.data)
        intent = build_payment_service().create_payment_intent(request.user, dto.order_id)
        return envelope(intent)


class VerifyPaymentView(APIView):
    """POST /api/v1/payments/verify/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        dto = parse_dto(VerifyPaymentDTO, request.data)
        order = build_payment_service().verify_payment(request.user, dto)
        return envelope(_order_summary(order), message="Payment verified successfully.")


class CashOnDeliveryView(APIView):
    """POST /api/v1/payments/cod/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        dto = parse_dto(PaymentOrderDTO, request.data)
        order = build_payment_service().confirm_cod(request.user, dto.order_id)
        return envelope(_order_summary(order), message="Cash on delivery order confirmed.")


class PaymentWebhookView(APIView):
    """POST /api/v1/payments/webhook/

    The signature covers the raw body, so ``request.data`` is never
    touched here.
    """

    permission_classes = [AllowAny]
    authentication_classes: list = []
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        build_payment_service().handle_webhook(
            request.body, request.headers.get(SIGNATURE_HEADER, "")
        )
        return envelope({"status": "ok"})
