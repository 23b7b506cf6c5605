"""Injected business configuration.

``CommerceConfig`` gathers every tunable rule the workflows depend on
(pricing, order numbering, gateway secrets) into one immutable object.
Services receive it through their constructors; only
``CommerceConfig.from_settings()`` touches ``django.conf.settings``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class CommerceConfig:
    currency: str = "INR"
    free_shipping_threshold: Decimal = Decimal("2000")
    shipping_fee: Decimal = Decimal("100")
    tax_rate: Decimal = Decimal("18")
    order_number_prefix: str = "MDD"
    order_number_max_attempts: int = 5
    order_number_backoff_seconds: float = 0.05
    max_cart_quantity: int = 10
    low_stock_threshold: int = 5
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    webhook_secret: str = ""

    @classmethod
    def from_settings(cls) -> CommerceConfig:
        commerce = settings.COMMERCE
        return cls(
            currency=commerce["CURRENCY"],
            free_shipping_threshold=Decimal(commerce["FREE_SHIPPING_THRESHOLD"]),
            shipping_fee=Decimal(commerce["SHIPPING_FEE"]),
            tax_rate=Decimal(commerce["TAX_RATE"]),
            order_number_prefix=commerce["ORDER_NUMBER_PREFIX"],
            order_number_max_attempts=commerce["ORDER_NUMBER_MAX_ATTEMPTS"],
            order_number_backoff_seconds=commerce["ORDER_NUMBER_BACKOFF_SECONDS"],
            max_cart_quantity=commerce["MAX_CART_QUANTITY"],
            low_stock_threshold=commerce["LOW_STOCK_THRESHOLD"],
            gateway_key_id=settings.RAZORPAY_KEY_ID,
            gateway_key_secret=settings.RAZORPAY_KEY_SECRET,
            webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
        )
