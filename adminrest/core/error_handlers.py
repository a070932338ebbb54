from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from adminrest.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CsvHeaderError,
    DomainError,
    ImportFailedError,
    RowRejectedError,
    InvalidFilterFieldError,
    InvalidFilterOperatorError,
    InvalidFilterValueError,
    NotFoundError,
    StructuredCellError,
    UpstreamError,
    ValidationError,
)
from adminrest.core.logging import get_logger

logger = get_logger(__name__)


ERROR_STATUS_MAP: dict[type[DomainError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    InvalidFilterOperatorError: status.HTTP_400_BAD_REQUEST,
    InvalidFilterFieldError: status.HTTP_400_BAD_REQUEST,
    InvalidFilterValueError: status.HTTP_400_BAD_REQUEST,
    CsvHeaderError: status.HTTP_400_BAD_REQUEST,
    StructuredCellError: status.HTTP_400_BAD_REQUEST,
    ImportFailedError: status.HTTP_400_BAD_REQUEST,
    RowRejectedError: status.HTTP_400_BAD_REQUEST,
    UpstreamError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
}


def _meta(request: Request) -> dict:
    return {
        "request_id": getattr(request.state, "request_id", None),
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = ERROR_STATUS_MAP.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(
        status_code=status_code,
        content={
            "errors": exc.to_errors(),
            "meta": _meta(request),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "errors": {
                "error": {
                    "code": "INTERNAL_001",
                    "message": "Internal server error",
                    "details": {},
                }
            },
            "meta": _meta(request),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
