"""
app/core/errors.py

Purpose: Maps exceptions to the JSON error envelope

- BlazeError subclasses carry their own status and code
- Unique index violations surface as 409 CONFLICT
- Database outages surface as 503 DATABASE_UNAVAILABLE
- Anything else is a logged 500
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pymongo.errors import ConnectionFailure, DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import BlazeError
from app.core.logging import get_logger
from app.schemas.response import ErrorResponse, ValidationDetail
from app.core.config import settings

logger = get_logger(__name__)


def _error(status_code: int, message: str, code: str, details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code, details=details).model_dump(),
        headers=headers,
    )


def _validation_details(exc: RequestValidationError) -> list:
    # ctx may carry exception instances that are not JSON serializable
    return [
        ValidationDetail(loc=list(err.get("loc", ())), msg=err.get("msg", ""), type=err.get("type", "")).model_dump()
        for err in exc.errors()
    ]


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(BlazeError)
    async def blaze_exception_handler(request: Request, exc: BlazeError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message}", extra={"url": str(request.url)})
        return _error(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles standard HTTP exceptions (404, 405, etc.)
        """
        return _error(exc.status_code, str(exc.detail), "HTTP_ERROR", headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(422, "Input validation failed", "VALIDATION_ERROR", _validation_details(exc))

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        logger.warning(f"Unique index rejected write: {exc.details}", extra={"url": str(request.url)})
        return _error(409, "Resource already exists", "CONFLICT")

    @app.exception_handler(ConnectionFailure)
    async def database_unavailable_handler(request: Request, exc: ConnectionFailure):
        # ServerSelectionTimeoutError is a ConnectionFailure
        logger.error(f"Database unavailable: {exc}", extra={"url": str(request.url)})
        return _error(503, "Database temporarily unavailable", "DATABASE_UNAVAILABLE")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else "unknown"
            },
            exc_info=True
        )

        message = "An internal error occurred. Please try again later." if settings.is_production else str(exc)
        return _error(500, message, "INTERNAL_ERROR")
