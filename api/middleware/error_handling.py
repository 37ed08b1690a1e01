from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from datetime import datetime, timezone

from api.schemas.responses import ErrorResponse
from core.logging import get_api_logger, get_error_logger
from core.utils.exceptions import (
    AccountNotFoundError,
    AppLockedError,
    ConfigurationError,
    DeltaDeskException,
    ExecutionNotFoundError,
    InvalidPasswordError,
    SessionCloseFailedError,
    ValidationError,
    VaultNotInitializedError,
    create_error_context,
)

api_logger = get_api_logger("api.middleware.error_handling")
error_logger = get_error_logger("api.middleware.error_handling")

# First match wins
EXCEPTION_STATUS_CODES = (
    (AppLockedError, 423),
    (AccountNotFoundError, 404),
    (ExecutionNotFoundError, 404),
    (InvalidPasswordError, 401),
    (ValidationError, 400),
    (VaultNotInitializedError, 400),
    (ConfigurationError, 503),
    (SessionCloseFailedError, 500),
)


def status_code_for(exc: DeltaDeskException) -> int:
    for exc_type, status_code in EXCEPTION_STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def deltadesk_exception_handler(request: Request, exc: DeltaDeskException) -> JSONResponse:
    """Map domain errors onto HTTP status codes"""
    status_code = status_code_for(exc)
    body = ErrorResponse(
        error=type(exc).__name__,
        message=exc.message,
        details=exc.details or None,
        removed=True if isinstance(exc, SessionCloseFailedError) else None,
    )

    log_context = create_error_context(exc, f"{request.method} {request.url.path}")
    if status_code >= 500:
        error_logger.error("API request failed", status_code=status_code, **log_context)
    else:
        api_logger.warning("API request rejected", status_code=status_code, **log_context)

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures are client errors; submitted values are never echoed back"""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    api_logger.warning("Request validation failed",
                       path=request.url.path, error_count=len(errors))
    body = ErrorResponse(
        error="ValidationError",
        message="Request validation failed",
        details={"errors": errors},
    )
    return JSONResponse(status_code=400, content=body.model_dump(mode="json", exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DeltaDeskException, deltadesk_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Global error handling middleware"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            error_logger.error(
                "Unhandled API exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
                exc_info=True
            )

            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "message": "An unexpected error occurred",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "path": request.url.path
                }
            )
