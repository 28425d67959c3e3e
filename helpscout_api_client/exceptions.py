"""
Custom exception types for the Help Scout API client.

Every HTTP status the Mailbox API documents maps onto its own exception
class so that callers can distinguish a rejected payload from a missing
resource or an exhausted rate limit without inspecting status codes.
Transport failures (DNS, refused connections, timeouts) are reported
separately as :class:`HelpScoutConnectionError`.
"""

from __future__ import annotations

from typing import Any, Optional


class HelpScoutError(Exception):
    """Base exception for all Help Scout client errors."""


class HelpScoutConnectionError(HelpScoutError):
    """Raised when the HTTP request could not be sent or completed."""


class HelpScoutAPIError(HelpScoutError):
    """Raised when the Help Scout API answers with an error status.

    Parameters
    ----------
    message : str, optional
        Human readable description of the failure.
    status_code : int, optional
        The HTTP status returned by the API.  ``None`` when the error
        did not originate from an HTTP response.
    response : object, optional
        The :class:`~helpscout_api_client.client.ApiResponse` that
        triggered the error, kept for callers that need headers.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        response: Any = None,
    ) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message
        self.status_code = status_code
        self.response = response


class ValidationError(HelpScoutAPIError):
    """Raised on ``400 Bad Request``; carries the field-level errors."""

    def __init__(
        self,
        validation_errors: Any = None,
        *,
        status_code: Optional[int] = 400,
        response: Any = None,
    ) -> None:
        self.validation_errors = validation_errors
        message = str(validation_errors) if validation_errors else None
        super().__init__(message, status_code=status_code, response=response)


class UnauthorizedError(HelpScoutAPIError):
    """Raised on ``401 Unauthorized`` or when no token could be obtained."""


class ForbiddenError(HelpScoutAPIError):
    """Raised on ``403 Forbidden``."""


class NotFoundError(HelpScoutAPIError):
    """Raised on ``404 Not Found``."""


class TooManyRequestsError(HelpScoutAPIError):
    """Raised on ``429 Too Many Requests``.

    ``retry_after`` holds the raw ``Retry-After`` header value, if any.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        retry_after: Optional[str] = None,
        status_code: Optional[int] = 429,
        response: Any = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message, status_code=status_code, response=response)


class InternalServerError(HelpScoutAPIError):
    """Raised on ``500 Internal Server Error``."""


class ServiceUnavailableError(HelpScoutAPIError):
    """Raised on ``503 Service Unavailable``."""


class NotImplementedStatusError(HelpScoutAPIError):
    """Raised for any status code this client has no mapping for."""
