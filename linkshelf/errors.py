"""
Typed service errors.

Every failure that leaves the service layer is a ``ServiceError`` subclass
carrying an HTTP-like status code and a short ``kind`` tag.  The message is
returned verbatim to the caller, so it must never contain internals.
"""
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException


class ServiceError(Exception):
    status_code: int = 500
    kind: str = "internal"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(ServiceError):
    status_code = 400
    kind = "bad_request"
    default_message = "Bad request"


class UnauthorizedError(ServiceError):
    status_code = 401
    kind = "unauthorized"
    default_message = "Authentication required"


class NotFoundError(ServiceError):
    status_code = 404
    kind = "not_found"
    default_message = "Not found"


class ConflictError(ServiceError):
    status_code = 409
    kind = "conflict"
    default_message = "Resource already exists"


class InternalError(ServiceError):
    pass


_ERRORS_BY_STATUS: dict[int, type[ServiceError]] = {
    cls.status_code: cls
    for cls in (BadRequestError, UnauthorizedError, NotFoundError, ConflictError)
}


def error_for_status(status_code: int, message: str | None = None) -> ServiceError:
    """Return the ServiceError matching *status_code*, Internal when unknown."""
    return _ERRORS_BY_STATUS.get(status_code, InternalError)(message)


def to_service_error(exc: Exception) -> ServiceError:
    """
    Convert *exc* into a typed ServiceError.

    - ServiceError instances are returned unchanged.
    - Unique/foreign-key violations raised by the store become Conflict.
    - HTTPException keeps its status code and detail.
    - Everything else becomes a generic Internal error.
    """
    if isinstance(exc, ServiceError):
        return exc
    if isinstance(exc, IntegrityError):
        return ConflictError()
    if isinstance(exc, HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else None
        return error_for_status(exc.status_code, detail)
    return InternalError()
