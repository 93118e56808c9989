"""Custom exception handlers for consistent error responses.

Domain errors raised by `salesdesk.domain` and `salesdesk.services` all
derive from SalesDeskException and carry their own HTTP status and error
code, so request handlers never translate them by hand.
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class SalesDeskException(Exception):
    """Base exception for SalesDesk application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(SalesDeskException):
    """A field is malformed or out of range.

    The message always names the offending field and the constraint it
    broke, e.g. ``rate: must be >= 0 (got -5)``.
    """

    def __init__(self, field: str, constraint: str, value=None):
        self.field = field
        self.constraint = constraint
        message = f"{field}: {constraint}"
        if value is not None:
            message = f"{message} (got {value!r})"
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
            details={"field": field, "constraint": constraint},
        )


class InvalidStateError(SalesDeskException):
    """A lifecycle transition (or a mutation) is not allowed in the current state."""

    def __init__(self, current: str, attempted: str, reason: str | None = None):
        self.current = current
        self.attempted = attempted
        message = f"Cannot move from {current} to {attempted}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="INVALID_STATE",
            details={"current": current, "attempted": attempted},
        )


class ConsistencyError(SalesDeskException):
    """Stored derived values disagree with a re-derivation from source data."""

    def __init__(self, record_id: str, mismatches: dict[str, tuple[str, str]]):
        self.record_id = record_id
        self.mismatches = mismatches
        parts = ", ".join(
            f"{name} stored={stored} derived={derived}"
            for name, (stored, derived) in mismatches.items()
        )
        super().__init__(
            message=f"Record {record_id} is inconsistent: {parts}",
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONSISTENCY_ERROR",
            details={
                "record_id": record_id,
                "mismatches": {
                    name: {"stored": stored, "derived": derived}
                    for name, (stored, derived) in mismatches.items()
                },
            },
        )


class ResourceNotFoundError(SalesDeskException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class PermissionDeniedError(SalesDeskException):
    """Exception for permission denied."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Create standardized error response.

    Format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "details": {...}  // Optional additional details
        }
    }
    """
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
    )


def _where(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


def _field_path(loc) -> str:
    """``("body", "items", 0, "rate")`` → ``"items.0.rate"``."""
    parts = [str(p) for p in loc if p not in _REQUEST_PARTS]
    return ".".join(parts) or "body"


_REQUEST_PARTS = ("body", "query", "path", "header")

# Unique constraints whose violation means two writers raced for a number
_NUMBER_CONSTRAINTS = ("uq_sales_documents_number", "uq_payments_number")


async def salesdesk_exception_handler(
    request: Request,
    exc: SalesDeskException,
) -> JSONResponse:
    """Domain errors carry their own status, code and details."""
    # A drifted record needs a person; everything else is the caller's mistake
    log = logger.error if isinstance(exc, ConsistencyError) else logger.warning
    log(
        f"{exc.error_code} on {request.url.path}: {exc.message}",
        extra={"error_code": exc.error_code, **_where(request)},
    )
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Auth guards and routing errors: code is ``HTTP_<status>``."""
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}", extra=_where(request))

    response = create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, PydanticValidationError],
) -> JSONResponse:
    """Malformed request bodies, reported in the same shape as domain
    validation errors: the first problem as ``{field, constraint}`` and
    the full list under ``errors``."""
    errors = [
        {"field": _field_path(error.get("loc") or ()), "constraint": error["msg"]}
        for error in exc.errors()
    ]
    logger.warning(
        f"Rejected request on {request.url.path}: {len(errors)} invalid field(s)",
        extra=_where(request),
    )

    first = errors[0] if errors else {"field": "body", "constraint": "is invalid"}
    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message=f"{first['field']}: {first['constraint']}",
        error_code="VALIDATION_ERROR",
        details={**first, "errors": errors},
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Constraint violations that slipped past the domain checks."""
    error_msg = str(exc.orig) if hasattr(exc, "orig") else str(exc)
    logger.error(f"Integrity error on {request.url.path}: {error_msg}", extra=_where(request))

    lowered = error_msg.lower()
    if any(name in lowered for name in _NUMBER_CONSTRAINTS):
        return create_error_response(
            status_code=status.HTTP_409_CONFLICT,
            message="Another request took this number first; retry the operation",
            error_code="NUMBER_CONFLICT",
        )
    if "unique" in lowered:
        message, error_code = "A record with this value already exists", "DUPLICATE_RECORD"
    elif "foreign key" in lowered:
        message, error_code = "Referenced record does not exist", "FOREIGN_KEY_VIOLATION"
    else:
        message, error_code = "Database constraint violation", "INTEGRITY_ERROR"

    return create_error_response(
        status_code=status.HTTP_409_CONFLICT,
        message=message,
        error_code=error_code,
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    logger.error(f"Database unavailable on {request.url.path}: {exc}", extra=_where(request))
    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Database temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        extra={**_where(request), "traceback": traceback.format_exc()},
        exc_info=True,
    )
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register every handler above on the FastAPI app."""
    app.add_exception_handler(SalesDeskException, salesdesk_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
