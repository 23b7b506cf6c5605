"""Payment request DTOs.

Both the neutral ``gateway_*`` field names and the ``razorpay_*`` names
posted by the Razorpay checkout widget are accepted.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PaymentOrderDTO(BaseModel):
    """Identifies the storefront order a payment action applies to."""

    model_config = ConfigDict(frozen=True)

    order_id: UUID = Field(validation_alias=AliasChoices("order_id", "orderId"))


class VerifyPaymentDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    order_id: UUID = Field(validation_alias=AliasChoices("order_id", "orderId"))
    gateway_order_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id"),
    )
    gateway_payment_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id"),
    )
    signature: str = Field(
        min_length=1,
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )
