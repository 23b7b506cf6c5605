"""Boundary validation: request payloads into immutable DTOs."""

from __future__ import annotations

from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from modules.core.exceptions import ValidationError

DTO = TypeVar("DTO", bound=BaseModel)


def parse_dto(dto_class: Type[DTO], data: Mapping[str, Any]) -> DTO:
    """Validate ``data`` into ``dto_class`` or raise the domain ``ValidationError``."""
    if hasattr(data, "dict"):
        # QueryDict from form/multipart bodies
        data = data.dict()
    try:
        return dto_class.model_validate(data)
    except PydanticValidationError as exc:
        details = [
            {
                "attr": ".".join(str(part) for part in error["loc"]) or None,
                "code": error["type"],
                "detail": error["msg"],
            }
            for error in exc.errors()
        ]
        raise ValidationError("Validation failed.", details=details) from exc
