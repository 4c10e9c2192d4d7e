"""
Domain error taxonomy and the handlers that map it to HTTP responses.

Services raise these instead of HTTPException so the booking and moderation
logic stays usable outside a request. Every failure leaves the API as a
JSON body of the form {"message": ..., "error": ...}.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException

from eventhub.core.logging import get_logger

logger = get_logger(__name__)

# SQLSTATE codes for serialization failure and deadlock
_TRANSIENT_SQLSTATES = {"40001", "40P01"}


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "domain_error"
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found"


class InsufficientInventory(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "insufficient_inventory"
    default_message = "Not enough seats available"

    def __init__(self, requested: int, available: int | None = None):
        self.requested = requested
        self.available = available
        if available is None:
            message = f"Not enough seats available. Requested: {requested}"
        else:
            message = f"Not enough seats available. Requested: {requested}, Available: {available}"
        super().__init__(message)


class AlreadyCancelled(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_cancelled"
    default_message = "Booking is already cancelled"


class PermissionDenied(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"
    default_message = "Permission denied"


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Invalid request"

    def __init__(self, message: str | None = None, field: str | None = None):
        self.field = field
        super().__init__(message)


class Conflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Resource already exists"


class TransientError(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "transient_error"
    default_message = "The request conflicted with a concurrent update. Please try again."


def is_transient_db_error(exc: Exception) -> bool:
    """True for write conflicts the store reports instead of applying the write."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in _TRANSIENT_SQLSTATES:
            return True
        # SQLite reports lock contention as OperationalError("database is locked")
        return "database is locked" in str(orig)
    return False


def _error_body(code: str, message: str, **extra) -> dict:
    return {"message": message, "error": code, **extra}


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(
        "domain_error",
        error=exc.code,
        message=exc.message,
        status_code=exc.status_code,
    )
    extra = {}
    if isinstance(exc, ValidationError) and exc.field:
        extra["field"] = exc.field
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, **extra),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return JSONResponse(
        status_code=422,
        content=_error_body("validation_error", message, errors=errors),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if is_transient_db_error(exc):
        logger.warning("transient_store_error", error=str(exc))
        return JSONResponse(
            status_code=TransientError.status_code,
            content=_error_body(TransientError.code, TransientError.default_message),
        )
    logger.exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal_error", "Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
