"""In-memory payment gateway for development and tests.

Returns deterministic-looking ``order_fake_*`` references and records
every call; ``configure(should_succeed=False)`` makes the next calls
fail the way an unreachable gateway would.
"""

from __future__ import annotations

from typing import Dict
from uuid import uuid4

from modules.core.exceptions import UpstreamError
from modules.payments.gateway.port import GatewayOrder, PaymentGateway


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrder:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": dict(notes),
            }
        )
        if not self.should_succeed:
            raise UpstreamError(self.failure_reason)
        return GatewayOrder(
            id=f"order_fake_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
            notes=dict(notes),
        )
