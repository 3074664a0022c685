from __future__ import annotations

from typing import Any, Dict, List, Optional


class SmsAeroError(Exception):
    """Base class for everything the client raises on purpose."""


class InvalidParameterError(SmsAeroError, ValueError):
    """A required argument was missing or blank. Raised before any network activity."""


class NetworkFailureError(SmsAeroError):
    """
    Every gateway failed with a transient network error.

    `attempts` lists the urls tried, in order; `last_error` is the final transport
    exception (also chained as __cause__).
    """

    def __init__(self, message: str, attempts: Optional[List[str]] = None, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = list(attempts or [])
        self.last_error = last_error


class DeadlineExceededError(NetworkFailureError):
    """The overall dispatch deadline ran out before a gateway answered."""


class ResponseParseError(SmsAeroError):
    def __init__(self, message: str, status_code: int = 0, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ApiResponseError(SmsAeroError):
    """The gateway answered with success=false."""

    def __init__(self, message: str, status_code: int = 0, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}
