"""
SiteLog Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages, without leaking internal
       details to the client.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct status codes.

Exception Hierarchy:
    SiteLogError (base)
    ├── ValidationError        → 400 Bad Request (client can fix)
    ├── ConflictError          → 400 Bad Request (duplicate unique key)
    ├── AuthenticationError    → 401 Unauthorized
    ├── NotFoundError          → 404 Not Found
    ├── FileStorageError       → 500 Internal Server Error
    └── DatabaseError          → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class SiteLogError(Exception):
    """
    Base exception for all SiteLog application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SiteLogError):
    """
    Raised when client input fails validation.

    HTTP: 400 Bad Request. Raised before any side effect takes place.

    Example response:
        {
            "error": "validation_error",
            "message": "Invalid report fields",
            "errors": [{"field": "reportDate", "message": "reportDate must be ISO8601 date"}]
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
        self.errors = errors or []


class ConflictError(SiteLogError):
    """
    Raised when a unique key already exists (e.g. registering a taken email).

    HTTP: 400 Bad Request, matching the public API contract.
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationError(SiteLogError):
    """
    Raised for bad credentials or a missing/invalid bearer token.

    HTTP: 401 Unauthorized with `WWW-Authenticate: Bearer`.

    Login failures always use the same message whether the email is unknown
    or the password is wrong.
    """

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SiteLogError):
    """
    Raised when a requested resource does not exist.

    HTTP: 404 Not Found. Services convert SQLAlchemy's `None` result into
    this exception.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(SiteLogError):
    """
    Raised when file system operations fail (disk full, permission denied).

    HTTP: 500. The path and OS error go to the log, never to the client.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SiteLogError):
    """
    Raised when database operations fail unexpectedly.

    HTTP: 500. The message returned to the client is generic; the
    underlying cause is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
