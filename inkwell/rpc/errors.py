"""Error taxonomy and the envelope every RPC caller receives."""

from enum import Enum
from typing import Any

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from inkwell.logging_config import get_logger

logger = get_logger(__name__)


class ErrorType(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    METHOD_NOT_SUPPORTED = "METHOD_NOT_SUPPORTED"
    UNPROCESSABLE_CONTENT = "UNPROCESSABLE_CONTENT"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"


# ErrorType -> (transport code, http status)
TRANSPORT_CODES: dict[ErrorType, tuple[str, int]] = {
    ErrorType.VALIDATION_ERROR: ("BAD_REQUEST", 400),
    ErrorType.NOT_FOUND: ("NOT_FOUND", 404),
    ErrorType.UNAUTHORIZED: ("UNAUTHORIZED", 401),
    ErrorType.FORBIDDEN: ("FORBIDDEN", 403),
    ErrorType.CONFLICT: ("CONFLICT", 409),
    ErrorType.INTERNAL_SERVER_ERROR: ("INTERNAL_SERVER_ERROR", 500),
    ErrorType.METHOD_NOT_SUPPORTED: ("METHOD_NOT_SUPPORTED", 405),
    ErrorType.UNPROCESSABLE_CONTENT: ("UNPROCESSABLE_CONTENT", 422),
    ErrorType.TOO_MANY_REQUESTS: ("TOO_MANY_REQUESTS", 429),
}

HTTP_STATUS_BY_CODE = {code: status for code, status in TRANSPORT_CODES.values()}
HTTP_STATUS_BY_CODE["BAD_REQUEST"] = 400

FORM_FIELD = "_form"
GENERIC_INTERNAL_MESSAGE = "An unexpected error occurred"


class RPCError(HTTPException):
    """An expected failure, rendered into the stable error envelope.

    ``code`` overrides the transport code implied by ``type`` (a foreign key
    violation is a BAD_REQUEST whose type is NOT_FOUND).
    """

    def __init__(
        self,
        type: ErrorType,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        validation_errors: list[dict[str, str]] | None = None,
        code: str | None = None,
    ):
        self.type = ErrorType(type)
        self.code = code or TRANSPORT_CODES[self.type][0]
        self.message = message
        self.details = details
        self.validation_errors = validation_errors
        super().__init__(status_code=HTTP_STATUS_BY_CODE[self.code], detail=message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def not_found(entity: str, id: Any = None) -> RPCError:
    message = f"{entity} with id {id} not found" if id is not None else f"{entity} not found"
    return RPCError(ErrorType.NOT_FOUND, message)


def conflict(entity: str, field: str, value: Any) -> RPCError:
    return RPCError(
        ErrorType.CONFLICT,
        f"A {entity} with this {field} already exists",
        details={"field": field, "value": value},
    )


def unauthorized(message: str = "You must be logged in to perform this action", details: dict | None = None) -> RPCError:
    return RPCError(ErrorType.UNAUTHORIZED, message, details=details)


def forbidden(message: str, details: dict | None = None) -> RPCError:
    return RPCError(ErrorType.FORBIDDEN, message, details=details)


def format_validation_errors(error: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{field, message}`` pairs.

    Errors raised by whole-model validators have an empty location and are
    reported against the ``_form`` pseudo-field.
    """
    formatted = []
    for err in error.errors():
        loc = [str(part) for part in err.get("loc", ())]
        field = ".".join(loc) if loc else FORM_FIELD
        message = err.get("msg", "Invalid value")
        if err.get("type") == "value_error" and err.get("ctx", {}).get("error") is not None:
            message = str(err["ctx"]["error"])
        formatted.append({"field": field, "message": message})
    return formatted


def validation_failed(error: ValidationError) -> RPCError:
    validation_errors = format_validation_errors(error)
    return RPCError(
        ErrorType.VALIDATION_ERROR,
        "Validation error occurred",
        validation_errors=validation_errors,
    )


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    # psycopg 3 exposes sqlstate, psycopg2 pgcode
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _constraint_name(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    return getattr(diag, "constraint_name", None)


def map_integrity_error(exc: IntegrityError) -> Exception:
    """Translate a storage constraint violation into an RPCError.

    Anything that is not a unique or foreign key violation is returned as is
    so the caller re-raises the original exception.
    """
    state = _sqlstate(exc)
    text = str(exc.orig).lower()
    constraint = _constraint_name(exc)

    if state == "23505" or "unique constraint failed" in text:
        return RPCError(
            ErrorType.CONFLICT,
            "A record with this value already exists",
            details={"constraint": constraint or text},
        )

    if state == "23503" or "foreign key constraint failed" in text:
        return RPCError(
            ErrorType.NOT_FOUND,
            "Referenced record does not exist",
            details={"constraint": constraint or text},
            code="BAD_REQUEST",
        )

    return exc


def format_error(exc: Exception, path: str | None = None) -> tuple[int, dict[str, Any]]:
    """Build ``(http_status, envelope)`` for any exception.

    Unexpected exceptions are logged here and reported with a generic
    message; their text never reaches the caller.
    """
    if not isinstance(exc, RPCError):
        logger.error("rpc_unhandled_exception", path=path, error_class=type(exc).__name__, exc_info=exc)
        exc = RPCError(ErrorType.INTERNAL_SERVER_ERROR, GENERIC_INTERNAL_MESSAGE)

    data: dict[str, Any] = {
        "type": exc.type.value,
        "httpStatus": exc.status_code,
        "path": path,
    }
    if exc.validation_errors is not None:
        data["validationErrors"] = exc.validation_errors
    if exc.details is not None:
        data["details"] = exc.details

    return exc.status_code, {"code": exc.code, "message": exc.message, "data": data}
