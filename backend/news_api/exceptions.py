from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that are reported to the client in the response envelope."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(status_code={self.status_code}, message={self.message!r})"


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation error"


class NoFieldsToUpdateError(ValidationError):
    default_message = "No valid fields to update"


class ConflictError(AppError):
    """A natural key (username, email, name, slug) is already taken."""

    status_code = 400
    default_message = "Duplicate entry found"

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None, details: Any = None):
        if details is None and field:
            details = {"field": field}
        super().__init__(message, details=details)
        self.field = field


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication required"


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid token"


class ExpiredTokenError(AuthenticationError):
    default_message = "Token expired"


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "Access denied - insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
