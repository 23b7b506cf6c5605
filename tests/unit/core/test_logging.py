"""Unit tests for the structlog masking processor.

Covers:
- Indian mobile numbers are masked, with or without +91
- key=value / key: value secrets (password, token, signature...) are masked
- Non-string values and harmless text pass through
"""

import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


def _mask(**event):
    return mask_sensitive_data(None, None, dict(event))


class TestMaskSensitiveData:
    @pytest.mark.parametrize("phone", ["9876543210", "+919876543210"])
    def test_masks_mobile_numbers(self, phone):
        result = _mask(event="address_saved", detail=f"call {phone} on arrival")
        assert phone not in result["detail"]
        assert "***MASKED***" in result["detail"]

    @pytest.mark.parametrize(
        "text",
        [
            "password=hunter2",
            "token: eyJhbGciOi",
            'razorpay_signature="abc123"',
            "Authorization=Bearer",
            "key_secret=shh",
        ],
    )
    def test_masks_secret_pairs(self, text):
        result = _mask(event=f"payload {text}")
        assert "***MASKED***" in result["event"]

    def test_leaves_order_numbers_alone(self):
        result = _mask(event="order.created", order_number="MDD25060001", total="2222.00")
        assert result["order_number"] == "MDD25060001"
        assert result["total"] == "2222.00"

    def test_non_strings_untouched(self):
        result = _mask(event="cart.item_added", quantity=3, data={"phone": "9876543210"})
        assert result["quantity"] == 3
        assert result["data"] == {"phone": "9876543210"}
