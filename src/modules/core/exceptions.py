"""Domain error taxonomy and the API error envelope.

Every business-rule failure raised by a service derives from
``DomainError``.  Each class carries the HTTP status and a stable
machine-readable ``code``; module-level exceptions subclass one of the
categories below so views never have to translate them one by one.

``envelope_exception_handler`` is registered as DRF's
``EXCEPTION_HANDLER`` and renders both DRF and domain errors as::

    {"success": false, "error": "...", "code": "...", "details": [...]}
"""

from __future__ import annotations

from typing import Any, List, Optional

import structlog
from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for expected business-rule failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "domain_error"
    default_message = "Request could not be processed."

    def __init__(
        self, message: Optional[str] = None, details: Optional[List[Any]] = None
    ) -> None:
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)


class ValidationError(DomainError):
    """Malformed input; the caller's fault."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Validation failed."


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found."


class AuthzError(DomainError):
    """Authenticated, but not permitted to act on the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "access_denied"
    default_message = "Access denied."


class ConflictError(DomainError):
    """The current state of the resource forbids the request."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Request conflicts with the current state."


class UpstreamError(DomainError):
    """A third-party collaborator (gateway, storage, e-mail) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"
    default_message = "An upstream service failed."


class SequenceExhausted(ConflictError):
    """Order numbering gave up after its bounded retries. Retryable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "sequence_exhausted"
    default_message = "Could not allocate an order number. Please try again."


def _flatten_drf_detail(detail: Any, attr: Optional[str] = None) -> List[dict]:
    if isinstance(detail, dict):
        flattened: List[dict] = []
        for key, value in detail.items():
            name = key if attr is None else f"{attr}.{key}"
            flattened.extend(_flatten_drf_detail(value, name))
        return flattened
    if isinstance(detail, list):
        flattened = []
        for value in detail:
            flattened.extend(_flatten_drf_detail(value, attr))
        return flattened
    return [
        {
            "attr": attr,
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
        }
    ]


def envelope_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    """Render every API failure in the success/error envelope."""
    if isinstance(exc, DomainError):
        logger.info(
            "api.domain_error",
            code=exc.code,
            status_code=exc.status_code,
            error=exc.message,
        )
        return Response(
            {
                "success": False,
                "error": exc.message,
                "code": exc.code,
                "details": exc.details,
            },
            status=exc.status_code,
        )

    if isinstance(exc, Http404):
        exc = drf_exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = drf_exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is not None:
        details = _flatten_drf_detail(exc.detail)
        if isinstance(exc, drf_exceptions.ValidationError):
            message = "Validation failed."
        elif details:
            message = details[0]["detail"]
        else:
            message = "Request failed."
        code = getattr(exc, "default_code", "error")
        response.data = {
            "success": False,
            "error": message,
            "code": code,
            "details": details,
        }
        return response

    logger.exception("api.unhandled_error", error=str(exc))
    body = {
        "success": False,
        "error": "Internal server error.",
        "code": "server_error",
        "details": [],
    }
    if settings.DEBUG:
        body["message"] = str(exc)
    return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
