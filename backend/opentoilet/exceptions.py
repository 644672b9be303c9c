"""
OpenToilet Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for each failure class of the API.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) map them to HTTP
       status codes and an `{"error": message}` body.
Who:   Raised by the store and services; caught by the global handlers.

Exception Hierarchy:
    OpenToiletError (base)
    ├── ValidationError          → 400 Bad Request (missing/invalid fields)
    ├── ConflictError            → 400 Bad Request (duplicate access code)
    ├── NotFoundError            → 404 Not Found
    ├── InternalError            → 500 Internal Server Error (store failure)
    └── RateLimitExceededError   → 429 Too Many Requests

The message of every exception is returned to the client verbatim; the
context dict is only logged.
"""

from typing import Any, Dict, Optional


class OpenToiletError(Exception):
    """
    Base exception for all OpenToilet application errors.

    Attributes:
        message:  Client-facing error description (returned as `error`)
        context:  Additional debug info (logged, never returned)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(OpenToiletError):
    """
    Raised when a request is missing required fields or carries invalid values.

    Examples: "Missing required fields", "Code is required", "Name is required".
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(OpenToiletError):
    """
    Raised when a write violates a uniqueness rule.

    The only such rule today is one access code string per restroom.
    Reported as 400 (not 409); the map client expects it.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "This record already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(OpenToiletError):
    """
    Raised when a referenced restroom or access code does not exist.

    The message reads "<Resource> not found", e.g. "Restroom not found".
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class InternalError(OpenToiletError):
    """
    Raised when the data store fails.

    The underlying driver message is passed through to the client, matching
    the `500 {error}` contract of the API.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(OpenToiletError):
    """
    Raised when a client exceeds the per-IP write rate limit.

    Response carries a Retry-After header with `retry_after` seconds.
    """

    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
