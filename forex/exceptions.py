"""
Domain Errors
Every error raised by the services carries the HTTP status it maps to
"""
from typing import Any, Optional


class ForexError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(ForexError):
    status_code = 400


class AuthenticationError(ForexError):
    status_code = 401


class PermissionDeniedError(ForexError):
    status_code = 403


class NotFoundError(ForexError):
    status_code = 404


class ConflictError(ForexError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """A lifecycle transition was requested from a status that does not allow it"""


class AggregationError(ForexError):
    """A storage fault happened while populating request documents"""

    status_code = 500

    def __init__(self, message: str = "aggregation failed"):
        super().__init__(message)


class OperationTimeoutError(ForexError):
    status_code = 504

    def __init__(self, message: str = "operation timed out"):
        super().__init__(message)
