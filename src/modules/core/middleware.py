"""Request correlation for structured logs.

Each request is tagged with the id sent in ``X-Request-ID`` (or its
``X-Correlation-ID`` alias) when it is well formed, otherwise with a
fresh UUIDv7.  The id is bound into structlog's context vars for the
lifetime of the request, handed to Celery tasks through
``get_correlation_id()`` and echoed back in the response.
"""

from __future__ import annotations

import re
import time
from contextvars import ContextVar
from typing import Callable

import structlog
import uuid6
from django.http import HttpRequest, HttpResponse

REQUEST_ID_HEADER = "X-Request-ID"

_INCOMING_HEADERS = ("HTTP_X_REQUEST_ID", "HTTP_X_CORRELATION_ID")
_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")
# Probes hit these every few seconds.
_QUIET_PATHS = frozenset({"/health"})

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)


def get_correlation_id() -> str:
    return correlation_id_var.get()


def bind_correlation_id(cid: str) -> None:
    """Make ``cid`` the current correlation id for logs and outgoing tasks."""
    correlation_id_var.set(cid)
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=cid)


def _incoming_id(request: HttpRequest) -> str:
    for key in _INCOMING_HEADERS:
        value = request.META.get(key, "").strip()
        if _VALID_ID.match(value):
            return value
    return str(uuid6.uuid7())


class CorrelationIdMiddleware:
    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = _incoming_id(request)
        bind_correlation_id(cid)
        started = time.monotonic()

        response = self.get_response(request)

        if request.path not in _QUIET_PATHS:
            logger.info(
                "http.request",
                method=request.method,
                path=request.path,
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - started) * 1000, 2),
            )
        response[REQUEST_ID_HEADER] = cid
        return response
