from typing import Any, List, Optional


class AppError(Exception):
    """Base class for errors that map to a client-facing HTTP response."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = 400


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class AttemptLimitExceeded(AppError):
    status_code = 409


class InvalidStateError(AppError):
    status_code = 409
