"""Retry predicates.

A predicate is called after every attempt with ``(request, response, error)``
and answers "should the loop keep going?". Returning ``False`` stops the
retry loop at once; returning ``True`` lets it continue until ``max_retries``
is exhausted.
"""

from __future__ import annotations

from typing import Callable, Optional

import httpx

RetryPredicate = Callable[[httpx.Request, Optional[httpx.Response], Optional[Exception]], bool]

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


def retry_on_status(*status_codes: int, on_error: bool = True) -> RetryPredicate:
    """Keep retrying while the response carries one of ``status_codes``.

    With no codes given, :data:`DEFAULT_RETRYABLE_STATUS_CODES` is used.
    Transport errors count as retryable unless ``on_error`` is False.
    """
    codes = frozenset(status_codes) or DEFAULT_RETRYABLE_STATUS_CODES

    def predicate(
        request: httpx.Request,
        response: httpx.Response | None,
        error: Exception | None,
    ) -> bool:
        if error is not None:
            return on_error
        return response is not None and response.status_code in codes

    return predicate


def retry_on_error() -> RetryPredicate:
    """Keep retrying only while attempts fail at the transport level."""

    def predicate(
        request: httpx.Request,
        response: httpx.Response | None,
        error: Exception | None,
    ) -> bool:
        return error is not None

    return predicate
