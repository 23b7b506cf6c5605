"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- RazorpayGateway in production (``PAYMENT_GATEWAY=razorpay``)
- FakeGateway for development and testing (``PAYMENT_GATEWAY=fake``)
"""

from __future__ import annotations

from typing import Optional

from django.conf import settings

from modules.payments.gateway.fake_adapter import FakeGateway
from modules.payments.gateway.port import GatewayOrder, PaymentGateway
from modules.payments.gateway.razorpay_adapter import RazorpayGateway

__all__ = [
    "FakeGateway",
    "GatewayOrder",
    "PaymentGateway",
    "RazorpayGateway",
    "get_gateway",
    "reset_gateway",
    "set_gateway",
]

_current_gateway: Optional[PaymentGateway] = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from settings once."""
    global _current_gateway
    if _current_gateway is None:
        if settings.PAYMENT_GATEWAY == "fake":
            _current_gateway = FakeGateway()
        else:
            _current_gateway = RazorpayGateway(
                key_id=settings.RAZORPAY_KEY_ID,
                key_secret=settings.RAZORPAY_KEY_SECRET,
            )
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
