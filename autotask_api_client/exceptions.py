"""
Custom exception types for the Autotask API client.

These exceptions allow callers to distinguish between failures
occurring while talking to the API, failures caused by invalid
query arguments, and responses that do not have the expected shape.
"""

from typing import Optional


class AutotaskError(Exception):
    """Base exception for all Autotask client errors."""


class AutotaskAPIError(AutotaskError):
    """Raised when an HTTP request to the Autotask API fails or returns an error status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class InvalidArgumentError(AutotaskError, ValueError):
    """Raised when a query argument is out of range or missing."""


class InvalidOperatorError(AutotaskError, ValueError):
    """Raised when a filter uses an operator Autotask does not support."""


class InvalidConjunctionError(AutotaskError, ValueError):
    """Raised when a filter group conjunction is neither AND nor OR."""


class MalformedResponseError(AutotaskError):
    """Raised when a response body lacks the ``item`` or ``items`` key."""
