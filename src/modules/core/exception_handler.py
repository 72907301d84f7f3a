"""DRF exception handler producing one error envelope for the whole API.

Every error response has the same shape, whether it comes from DRF
(authentication, throttling, serializer validation) or from a domain error
raised by the service layer::

    {"type": "<category>", "errors": [{"code": ..., "detail": ..., "attr": ...}]}

Domain errors are rendered with their ``public_message`` only; the full
exception (which may carry provider codes or internal identifiers) is
logged, never returned.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from shared.domain.errors import DomainError, ErrorCategory

logger = structlog.get_logger(__name__)

CATEGORY_STATUS: Dict[str, int] = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.PAYMENT: status.HTTP_502_BAD_GATEWAY,
    ErrorCategory.PERSISTENCE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.AUTHORIZATION: status.HTTP_401_UNAUTHORIZED,
}


def status_for(exc: DomainError) -> int:
    override = getattr(exc, "http_status", None)
    if override:
        return override
    return CATEGORY_STATUS.get(exc.category, status.HTTP_400_BAD_REQUEST)


def standardized_exception_handler(
    exc: Exception, context: Dict[str, Any]
) -> Optional[Response]:
    if isinstance(exc, DomainError):
        http_status = status_for(exc)
        log = logger.bind(
            category=exc.category,
            code=exc.code,
            error=str(exc),
            view=context.get("view").__class__.__name__,
        )
        if http_status >= 500:
            log.error("api.domain_error")
        else:
            log.info("api.domain_error")
        return Response(
            {
                "type": exc.category,
                "errors": [
                    {"code": exc.code, "detail": exc.public_message, "attr": None}
                ],
            },
            status=http_status,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
        errors = _flatten(exc.detail)
    else:
        error_type = "client_error" if response.status_code < 500 else "server_error"
        detail = getattr(exc, "detail", str(exc))
        code = getattr(detail, "code", None) or getattr(exc, "default_code", "error")
        errors = [{"code": code, "detail": str(detail), "attr": None}]

    response.data = {"type": error_type, "errors": errors}
    return response


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    """Turn DRF's nested ``ValidationError.detail`` into a flat list."""
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            child = key if attr is None or key == "non_field_errors" else f"{attr}.{key}"
            errors.extend(_flatten(value, child))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                errors.extend(_flatten(value, f"{attr}.{index}" if attr else str(index)))
            else:
                errors.extend(_flatten(value, attr))
        return errors
    return [
        {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": attr,
        }
    ]
