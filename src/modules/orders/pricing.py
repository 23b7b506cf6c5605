"""Checkout pricing.

subtotal = sum(price * quantity)
shipping = 0 when subtotal >= free-shipping threshold, else the flat fee
tax      = subtotal * rate / 100, rounded half-up to whole currency units
total    = subtotal + shipping + tax - discount
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable, Tuple

if TYPE_CHECKING:
    from modules.core.conf import CommerceConfig

CENTS = Decimal("0.01")
WHOLE_UNITS = Decimal("1")


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: Decimal
    shipping_cost: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal


def compute_pricing(
    lines: Iterable[Tuple[Decimal, int]],
    config: CommerceConfig,
    discount: Decimal = Decimal("0"),
) -> PricingBreakdown:
    """Price ``(unit_price, quantity)`` lines under ``config``'s rules."""
    subtotal = sum(
        (Decimal(price) * quantity for price, quantity in lines), Decimal("0")
    ).quantize(CENTS)

    if subtotal >= config.free_shipping_threshold:
        shipping = Decimal("0")
    else:
        shipping = Decimal(config.shipping_fee)

    tax = (subtotal * config.tax_rate / Decimal("100")).quantize(
        WHOLE_UNITS, rounding=ROUND_HALF_UP
    )
    total = subtotal + shipping + tax - discount

    return PricingBreakdown(
        subtotal=subtotal,
        shipping_cost=shipping.quantize(CENTS),
        tax_rate=Decimal(config.tax_rate).quantize(CENTS),
        tax_amount=tax.quantize(CENTS),
        discount=Decimal(discount).quantize(CENTS),
        total=total.quantize(CENTS),
    )
