"""
DRF exception handler for application errors.

Maps the core.exceptions hierarchy onto HTTP status codes so views can let
service exceptions propagate instead of catching them one by one.

Mapping:
    ValidationError     -> 400 Bad Request
    NotFoundError       -> 404 Not Found
    ConflictError       -> 409 Conflict
    InfrastructureError -> 503 Service Unavailable (details hidden)
    other               -> 400 Bad Request

Everything that is not a BaseApplicationError falls through to DRF's
default handler (serializer errors, parse errors, 405, etc.).

Usage:
    # settings.py
    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "core.exception_handler.exception_handler",
    }
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

# Checked in order; first match wins
STATUS_BY_CATEGORY: tuple[tuple[type[BaseApplicationError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InfrastructureError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: BaseApplicationError) -> int:
    """Return the HTTP status for an application error."""
    for category, code in STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return code
    return status.HTTP_400_BAD_REQUEST


def exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """
    Convert application errors into JSON responses.

    Args:
        exc: The raised exception
        context: DRF handler context (view, request, args, kwargs)

    Returns:
        Response for handled exceptions, None to let Django re-raise
    """
    if not isinstance(exc, BaseApplicationError):
        return drf_exception_handler(exc, context)

    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else None
    http_status = status_for(exc)

    if isinstance(exc, InfrastructureError):
        logger.error(
            f"Infrastructure failure in {view_name}: {exc.message}",
            exc_info=exc,
            extra={"error_code": exc.error_code, "details": exc.details},
        )
        body = {"error": exc.message, "error_code": exc.error_code}
    else:
        logger.warning(
            f"Request rejected by {view_name}: {exc.error_code}",
            extra={"error_code": exc.error_code, "details": exc.details},
        )
        body = exc.to_dict()

    return Response(body, status=http_status)
