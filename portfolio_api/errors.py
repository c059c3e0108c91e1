"""errors.py — API error taxonomy.

Handlers raise these; ``lambda_function`` turns them into error responses.
Anything that is not an ``ApiError`` becomes a generic 500.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

__all__ = [
    "ApiError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "MethodNotAllowed",
    "NotFoundError",
    "PartialWriteError",
    "RouteNotFound",
    "SectionIndexMissing",
    "ValidationError",
]


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.extra = extra


class AuthenticationError(ApiError):
    status_code = 401
    code = "PERMISSION_DENIED"


class AuthorizationError(ApiError):
    status_code = 403
    code = "FORBIDDEN"


class ValidationError(ApiError):
    """400 with a list of ``{"field", "message"}`` pairs as details."""

    status_code = 400
    code = "INVALID_INPUT"

    def __init__(self, message: str = "Validation Error", errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message, details=list(errors or []))

    @property
    def errors(self) -> List[Dict[str, str]]:
        return self.details


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class RouteNotFound(NotFoundError):
    code = "ROUTE_NOT_FOUND"


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"


class MethodNotAllowed(ApiError):
    status_code = 405
    code = "METHOD_NOT_ALLOWED"


class PartialWriteError(ApiError):
    """The content record was written but its section index was not.

    Recovery is an index rebuild (``portfolio-reindex``), which re-derives
    every entry from the records on S3.
    """

    status_code = 500
    code = "PARTIAL_WRITE"


class SectionIndexMissing(Exception):
    """Raised by the index maintainer when a replace finds no index blob."""

    def __init__(self, section: str, key: str) -> None:
        super().__init__(f"Section index not found for '{section}' at {key}")
        self.section = section
        self.key = key
