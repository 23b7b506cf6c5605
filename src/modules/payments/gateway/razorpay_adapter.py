"""Razorpay adapter built on the official ``razorpay`` SDK.

The SDK talks HTTP through ``requests``; transport failures and API
errors alike surface as ``UpstreamError``.
"""

from __future__ import annotations

from typing import Dict

import razorpay
import structlog
from razorpay.errors import BadRequestError, GatewayError, ServerError
from requests.exceptions import RequestException

from modules.core.exceptions import UpstreamError
from modules.payments.gateway.port import GatewayOrder, PaymentGateway

logger = structlog.get_logger(__name__)

SDK_ERRORS = (BadRequestError, GatewayError, ServerError, RequestException)


class RazorpayGateway(PaymentGateway):
    """Creates Razorpay orders with the configured key pair."""

    def __init__(self, key_id: str, key_secret: str, client=None) -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = razorpay.Client(auth=(self.key_id, self._key_secret))
        return self._client

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrder:
        try:
            response = self.client.order.create(
                data={
                    "amount": amount,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": notes,
                }
            )
        except SDK_ERRORS as exc:
            logger.error("gateway.create_order_failed", receipt=receipt, error=str(exc))
            raise UpstreamError("Failed to create payment order.") from exc

        return GatewayOrder(
            id=response["id"],
            amount=int(response.get("amount", amount)),
            currency=response.get("currency", currency),
            receipt=response.get("receipt", receipt),
            notes=response.get("notes") or {},
        )
