from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    """Base class for errors rendered as a JSON envelope."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailure(ApiError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[dict[str, str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors


class InvalidStatus(ApiError):
    status_code = 400


class MalformedIdentifier(ApiError):
    status_code = 400
    default_message = "Invalid contact ID format"


class MalformedRequestBody(ApiError):
    status_code = 400
    default_message = "Invalid JSON in request body"


class DuplicateEntry(ApiError):
    status_code = 400
    default_message = "Duplicate entry detected"


class NotFound(ApiError):
    status_code = 404
    default_message = "Contact submission not found"


class PayloadTooLarge(ApiError):
    status_code = 413
    default_message = "Request body too large"


class RateLimited(ApiError):
    status_code = 429
    default_message = "Too many requests, please try again later."

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamUnavailable(ApiError):
    """Raised when the database is unreachable or a query fails.

    ``detail`` carries the internal reason; it is only exposed to clients
    outside production.
    """

    status_code = 500
    default_message = "An unexpected database error occurred. Please try again later."

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail
