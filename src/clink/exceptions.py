"""Client-specific exceptions."""

from __future__ import annotations

import httpx


class ClinkError(Exception):
    """Base exception for all clink failures."""

    def __init__(
        self,
        message: str,
        *,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.response = response
        self.cause = cause


class ClinkValidationError(ClinkError):
    """Raised when an option is given an invalid value."""


class ClinkRateLimitWaitError(ClinkError):
    """Raised when waiting on the rate limiter is cancelled or times out."""


class ClinkRequestError(ClinkError):
    """Raised when the final dispatch attempt failed at the transport level."""


class ClinkDecodeError(ClinkError):
    """Raised when a response body cannot be decoded."""
