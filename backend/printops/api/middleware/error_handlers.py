"""
Error Handlers

Every error leaves the API in the same envelope:
{"error": {"code", "kind", "message", "details"}}
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from ...domain.errors import DomainError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _error_response(
    status_code: int,
    code: str,
    kind: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    response_headers = {"X-Correlation-Id": get_correlation_id() or ""}
    response_headers.update(headers or {})
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "kind": kind,
                "message": message,
                "details": jsonable_encoder(details or {}),
            }
        },
        headers=response_headers
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Expected business rule rejections; logged at warning level"""
    logger.warning(
        f"{exc.kind} on {request.method} {request.url.path}: {exc.message}",
        extra={"error_code": exc.error_code, "details": exc.details}
    )
    return _error_response(exc.http_status, exc.error_code, exc.kind, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    HTTPExceptions from dependencies and routing (401, 404, 405)

    A detail that is already an error envelope (the auth dependency builds one
    from AuthenticationError.to_dict) is passed through unchanged.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
            headers={"X-Correlation-Id": get_correlation_id() or "", **(headers or {})}
        )
    return _error_response(
        exc.status_code,
        "HTTP_ERROR",
        "HttpError",
        str(exc.detail),
        headers=headers
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and query strings"""
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        f"Validation error on {request.method} {request.url.path}: {errors}",
        extra={"error_code": "VALIDATION_ERROR"}
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "ValidationError",
        "Request validation failed",
        {"errors": errors}
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected; the traceback goes to the error log"""
    logger.error(
        f"Unexpected error on {request.method} {request.url.path}: {exc}",
        extra={"error_code": "INTERNAL_ERROR"},
        exc_info=True
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "InternalError",
        "An unexpected error occurred",
        {"hint": "Check server logs for details"}
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the application"""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
