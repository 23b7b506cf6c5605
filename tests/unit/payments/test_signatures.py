"""Unit tests for gateway signatures and minor-unit conversion.

Covers:
- Checkout signature over "<order_id>|<payment_id>"
- Webhook signature over the raw body
- Tampered values, wrong secrets and empty inputs are rejected
- Rupees to paise
"""

import hashlib
import hmac
from decimal import Decimal

import pytest

from modules.payments.services import to_minor_units
from modules.payments.signatures import (
    payment_signature,
    verify_payment_signature,
    verify_webhook_signature,
)

pytestmark = pytest.mark.unit

SECRET = "test-key-secret"


class TestPaymentSignature:
    def test_matches_hmac_sha256_hex(self):
        expected = hmac.new(
            SECRET.encode(), b"order_abc|pay_xyz", hashlib.sha256
        ).hexdigest()
        assert payment_signature(SECRET, "order_abc", "pay_xyz") == expected

    def test_valid_signature_verifies(self):
        signature = payment_signature(SECRET, "order_abc", "pay_xyz")
        assert verify_payment_signature(SECRET, "order_abc", "pay_xyz", signature)

    def test_swapped_payment_id_fails(self):
        signature = payment_signature(SECRET, "order_abc", "pay_xyz")
        assert not verify_payment_signature(SECRET, "order_abc", "pay_other", signature)

    def test_wrong_secret_fails(self):
        signature = payment_signature("another-secret", "order_abc", "pay_xyz")
        assert not verify_payment_signature(SECRET, "order_abc", "pay_xyz", signature)

    def test_empty_secret_or_signature_fails(self):
        signature = payment_signature(SECRET, "order_abc", "pay_xyz")
        assert not verify_payment_signature("", "order_abc", "pay_xyz", signature)
        assert not verify_payment_signature(SECRET, "order_abc", "pay_xyz", "")


class TestWebhookSignature:
    BODY = b'{"event":"payment.captured"}'

    def test_valid_body_verifies(self):
        signature = hmac.new(b"hook-secret", self.BODY, hashlib.sha256).hexdigest()
        assert verify_webhook_signature("hook-secret", self.BODY, signature)

    def test_modified_body_fails(self):
        signature = hmac.new(b"hook-secret", self.BODY, hashlib.sha256).hexdigest()
        assert not verify_webhook_signature("hook-secret", self.BODY + b" ", signature)

    def test_missing_header_fails(self):
        assert not verify_webhook_signature("hook-secret", self.BODY, "")


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount,paise",
        [
            (Decimal("2222.00"), 222200),
            (Decimal("0.50"), 50),
            (Decimal("1060.82"), 106082),
        ],
    )
    def test_rupees_to_paise(self, amount, paise):
        assert to_minor_units(amount) == paise
