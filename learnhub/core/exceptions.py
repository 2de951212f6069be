from functools import wraps
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class AppException(Exception):
    """Base class for errors rendered as ``{"error": ...}`` JSON responses."""

    error_type = "application_error"

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        reference_id: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.reference_id = reference_id
        super().__init__(message)


class ValidationError(AppException):
    """Malformed request; shown to the user immediately, never retried."""

    error_type = "validation_error"

    def __init__(self, message: str, reference_id: Optional[str] = None):
        super().__init__(message, 400, reference_id)


class NotFoundError(AppException):
    error_type = "not_found"

    def __init__(self, message: str, reference_id: Optional[str] = None):
        super().__init__(message, 404, reference_id)


class ConflictError(AppException):
    error_type = "conflict"

    def __init__(self, message: str, reference_id: Optional[str] = None):
        super().__init__(message, 409, reference_id)


class PersistenceError(AppException):
    """A ledger or progress write did not complete."""

    error_type = "persistence_error"

    def __init__(self, message: str, reference_id: Optional[str] = None):
        super().__init__(message, 500, reference_id)


class UpstreamServiceError(AppException):
    """Payment, email or video provider call failed."""

    error_type = "upstream_error"

    def __init__(self, message: str, reference_id: Optional[str] = None):
        super().__init__(message, 502, reference_id)


def db_exception(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError:
            raise ConflictError("Duplicate entry: already exists")
        except SQLAlchemyError:
            raise PersistenceError("Database error occurred")

    return wrapper
