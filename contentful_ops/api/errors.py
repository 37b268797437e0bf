"""
Error types raised at the Content Management API boundary.

Every failed HTTP call is turned into one of these classes by
ContentfulManagementClient, so callers branch on the exception type
instead of inspecting response shapes:

    ContentfulError            any other failure (status, error_id, details)
      RateLimitError           429 / RateLimitExceeded
      NotFoundError            404 / NotFound
      ValidationFailedError    422 / ValidationFailed
      AuthenticationError      401 / 403
    RetriesExhaustedError      retry budget spent on rate limits
"""

from typing import Optional


class ContentfulError(Exception):
    """A failed Content Management API call."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_id: Optional[str] = None,
        details: Optional[dict] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.error_id = error_id
        self.details = details or {}
        self.request_id = request_id

    def __str__(self):
        if self.status:
            return f"{self.error_id or 'Error'} ({self.status}): {self.message}"
        return self.message


class RateLimitError(ContentfulError):
    """Raised on HTTP 429."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[float] = None, **kwargs):
        kwargs.setdefault("status", 429)
        kwargs.setdefault("error_id", "RateLimitExceeded")
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class NotFoundError(ContentfulError):
    """Raised on HTTP 404."""

    def __init__(self, message: str = "The resource could not be found.", **kwargs):
        kwargs.setdefault("status", 404)
        kwargs.setdefault("error_id", "NotFound")
        super().__init__(message, **kwargs)


class ValidationFailedError(ContentfulError):
    """Raised on HTTP 422. `details["errors"]` holds the per-field errors."""

    def __init__(self, message: str = "Validation error", **kwargs):
        kwargs.setdefault("status", 422)
        kwargs.setdefault("error_id", "ValidationFailed")
        super().__init__(message, **kwargs)

    @property
    def errors(self) -> list:
        return self.details.get("errors") or []


class AuthenticationError(ContentfulError):
    """Raised on HTTP 401/403. Fatal for a run."""


class RetriesExhaustedError(Exception):
    """Raised when an operation kept hitting rate limits past its attempt budget."""

    def __init__(self, operation: str, attempts: int, last_error: Optional[Exception] = None):
        super().__init__(f"Operation {operation} failed after {attempts} attempts (rate limited)")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


STATUS_ERRORS = {
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    422: ValidationFailedError,
    429: RateLimitError,
}
