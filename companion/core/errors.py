# companion/core/errors.py
"""
Error types shared by the services and the HTTP layer.

Each class carries the HTTP status the API maps it to, so routes can raise
domain errors and let the exception handler in main.py translate them.
"""
from __future__ import annotations


class CompanionError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(CompanionError):
    """Raised by the identity provider; the message is shown to the user as-is."""
    status_code = 401


class PermissionDeniedError(CompanionError):
    status_code = 403


class NotFoundError(CompanionError):
    status_code = 404


class RepositoryError(CompanionError):
    """A persistence call failed (connection, constraint, unexpected row)."""
    status_code = 502


class AppointmentValidationError(CompanionError, ValueError):
    """Rejected before submission, e.g. scheduling in the past."""
    status_code = 422
