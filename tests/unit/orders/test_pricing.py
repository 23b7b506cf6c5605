"""Unit tests for checkout pricing.

Covers:
- Flat shipping below the free-shipping threshold, none at or above it
- Tax rounded half-up to whole rupees
- Total equals subtotal + shipping + tax - discount
- Rules read from the injected configuration
"""

from decimal import Decimal

import pytest

from modules.core.conf import CommerceConfig
from modules.orders.pricing import compute_pricing

pytestmark = pytest.mark.unit

CONFIG = CommerceConfig()


class TestComputePricing:
    def test_small_order_pays_shipping_and_rounded_tax(self):
        pricing = compute_pricing([(Decimal("899.00"), 2)], CONFIG)

        assert pricing.subtotal == Decimal("1798.00")
        assert pricing.shipping_cost == Decimal("100.00")
        assert pricing.tax_amount == Decimal("324.00")
        assert pricing.total == Decimal("2222.00")

    def test_order_above_threshold_ships_free(self):
        pricing = compute_pricing([(Decimal("2500.00"), 1)], CONFIG)

        assert pricing.shipping_cost == Decimal("0.00")
        assert pricing.tax_amount == Decimal("450.00")
        assert pricing.total == Decimal("2950.00")

    def test_threshold_itself_ships_free(self):
        pricing = compute_pricing([(Decimal("1000.00"), 2)], CONFIG)
        assert pricing.shipping_cost == Decimal("0.00")

    def test_tax_half_rupee_rounds_up(self):
        # 25 * 18% = 4.50
        pricing = compute_pricing([(Decimal("25.00"), 1)], CONFIG)
        assert pricing.tax_amount == Decimal("5.00")

    def test_multiple_lines_are_summed(self):
        pricing = compute_pricing(
            [(Decimal("899.00"), 1), (Decimal("450.50"), 2)], CONFIG
        )
        assert pricing.subtotal == Decimal("1800.00")

    def test_discount_is_subtracted_from_total(self):
        pricing = compute_pricing(
            [(Decimal("2500.00"), 1)], CONFIG, discount=Decimal("150")
        )
        assert pricing.discount == Decimal("150.00")
        assert pricing.total == Decimal("2800.00")

    def test_total_matches_breakdown(self):
        pricing = compute_pricing([(Decimal("1234.56"), 3)], CONFIG)
        assert pricing.total == (
            pricing.subtotal + pricing.shipping_cost + pricing.tax_amount - pricing.discount
        )

    def test_rules_come_from_config(self):
        config = CommerceConfig(
            free_shipping_threshold=Decimal("500"),
            shipping_fee=Decimal("40"),
            tax_rate=Decimal("5"),
        )
        cheap = compute_pricing([(Decimal("100.00"), 1)], config)
        assert cheap.shipping_cost == Decimal("40.00")
        assert cheap.tax_rate == Decimal("5.00")
        assert cheap.tax_amount == Decimal("5.00")

        free = compute_pricing([(Decimal("500.00"), 1)], config)
        assert free.shipping_cost == Decimal("0.00")
