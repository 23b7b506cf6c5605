"""Identity DTOs.

E-mail addresses are trimmed, lower-cased and checked with Django's
``validate_email``; password strength is left to the configured
``AUTH_PASSWORD_VALIDATORS``.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _normalise_email(value: str) -> str:
    value = value.strip().lower()
    try:
        validate_email(value)
    except DjangoValidationError as exc:
        raise ValueError("Enter a valid email address.") from exc
    return value


class SignUpDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    password: str = Field(min_length=1, max_length=128)
    name: str = Field(default="", max_length=150)

    @field_validator("email")
    @classmethod
    def email_must_be_valid(cls, v: str) -> str:
        return _normalise_email(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class SignInDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def email_must_be_valid(cls, v: str) -> str:
        return _normalise_email(v)
