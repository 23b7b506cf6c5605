"""Gateway signature scheme.

Checkout callbacks are signed as ``HMAC_SHA256(key_secret,
"<gateway_order_id>|<gateway_payment_id>")`` and webhooks as
``HMAC_SHA256(webhook_secret, raw_body)``, both hex encoded.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Union


def sign(secret: str, message: Union[str, bytes]) -> str:
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    return sign(secret, f"{gateway_order_id}|{gateway_payment_id}")


def verify_payment_signature(
    secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str
) -> bool:
    if not secret or not signature:
        return False
    expected = payment_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected, signature)


def verify_webhook_signature(secret: str, raw_body: bytes, signature: str) -> bool:
    if not secret or not signature:
        return False
    return hmac.compare_digest(sign(secret, raw_body), signature)
