from typing import Any, Optional


class AppError(Exception):
    """Base class for errors reported to API callers."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = 422


class NotFoundError(AppError):
    status_code = 404


class AuthorizationError(AppError):
    status_code = 403


class ConflictError(AppError):
    status_code = 409


class InternalError(AppError):
    status_code = 500
