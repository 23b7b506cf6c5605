"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are
the contracts between the API layer and the Service layer; every field
check for a request happens here, once, at the boundary.

- ``AddressDTO``: a normalised shipping or billing address.
- ``CheckoutDTO``: input for order creation from the cart.
- ``UpdateStatusDTO``: admin status change with optional tracking data.
- ``CancelOrderDTO``: optional cancellation reason.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import OrderStatus

PHONE_PATTERN = re.compile(r"^(\+91)?[6-9]\d{9}$")
PINCODE_PATTERN = re.compile(r"^\d{6}$")


class AddressDTO(BaseModel):
    """Immutable, normalised postal address.

    Strings are trimmed; ``phone`` additionally loses inner whitespace
    and must be an Indian mobile number, ``pincode`` must be 6 digits.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    full_name: str = Field(min_length=1, max_length=100)
    phone: str
    address_line1: str = Field(min_length=1, max_length=255)
    address_line2: str = ""
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    pincode: str
    country: str = "India"

    @field_validator("phone")
    @classmethod
    def phone_must_be_mobile_number(cls, v: str) -> str:
        v = re.sub(r"\s+", "", v)
        if not PHONE_PATTERN.match(v):
            raise ValueError("Phone must be a valid 10-digit mobile number.")
        return v

    @field_validator("pincode")
    @classmethod
    def pincode_must_be_six_digits(cls, v: str) -> str:
        if not PINCODE_PATTERN.match(v):
            raise ValueError("Pincode must be exactly 6 digits.")
        return v

    def as_snapshot(self) -> Dict[str, Any]:
        return self.model_dump()


class CheckoutDTO(BaseModel):
    """Immutable DTO for checkout requests.

    ``billing_address`` is required only when ``use_same_address`` is off.
    """

    model_config = ConfigDict(frozen=True)

    shipping_address: AddressDTO
    billing_address: Optional[AddressDTO] = None
    use_same_address: bool = True
    notes: str = Field(default="", max_length=500)

    @model_validator(mode="after")
    def billing_address_when_different(self):
        if not self.use_same_address and self.billing_address is None:
            raise ValueError("Billing address is required when it differs from shipping.")
        return self

    @property
    def effective_billing_address(self) -> AddressDTO:
        if self.use_same_address or self.billing_address is None:
            return self.shipping_address
        return self.billing_address


class UpdateStatusDTO(BaseModel):
    """Admin status change request."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    status: OrderStatus
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    notes: str = ""


class CancelOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    reason: str = Field(default="", max_length=500)


class ListOrdersDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Optional[OrderStatus] = None
