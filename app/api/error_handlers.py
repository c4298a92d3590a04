"""Error Handlers — map exceptions to the JSON error envelope of the connections API.

Invariants:
    - Every error response has the shape {"error": {code, message, category, severity, ...}}
    - KnowledgeHubError → its own http_status and code; validation failures also
      name the offending field
    - RequestValidationError (missing/malformed ids) → 400 VALIDATION_ERROR
    - Exception (catch-all) → 500 INTERNAL_ERROR, never leaks internal details

Design Decisions:
    - Three layers registered in order: domain, request validation, catch-all
    - Client-side errors (< 500) logged at WARNING; server-side at ERROR
    - Field names drop the request section ("body", "query", "path") so the client
      sees the same key it sent, e.g. "target_user_id"
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import (
    ErrorCategory, ErrorSeverity, KnowledgeHubError, RelationshipValidationError,
)

logger = logging.getLogger(__name__)

_REQUEST_SECTIONS = {"body", "query", "path", "cookie", "header"}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(KnowledgeHubError)
    async def knowledge_hub_error_handler(request: Request, exc: KnowledgeHubError):
        level = logging.WARNING if exc.http_status < 500 else logging.ERROR
        logger.log(
            level,
            f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "principal_id": exc.context.principal_id,
                "counterparty_id": exc.context.counterparty_id,
                "operation": exc.context.operation,
            },
        )
        body = exc.to_response()
        if isinstance(exc, RelationshipValidationError):
            body["error"]["details"] = [
                {"field": exc.field, "message": exc.message, "type": exc.code.lower()},
            ]
        return JSONResponse(status_code=exc.http_status, content=body)


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        details = _field_details(exc)
        logger.warning(
            f"Invalid request on {request.url.path}: "
            f"{', '.join(d['field'] for d in details)}",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        first = details[0] if details else None
        message = (
            f"Invalid {first['field']}: {first['message']}" if first
            else "Invalid request data"
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_envelope(
                "VALIDATION_ERROR", message,
                ErrorCategory.VALIDATION, ErrorSeverity.ERROR,
                details=details,
            ),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
            extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_envelope(
                "INTERNAL_ERROR", "An unexpected error occurred",
                ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
            ),
        )


def _field_details(exc: RequestValidationError) -> list[dict]:
    details = []
    for e in exc.errors():
        loc = [str(part) for part in e["loc"]]
        if loc and loc[0] in _REQUEST_SECTIONS:
            loc = loc[1:]
        details.append({
            "field": ".".join(loc) or "body",
            "message": e["msg"],
            "type": e["type"],
        })
    return details


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }
