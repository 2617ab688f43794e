"""Configurable HTTP client with header injection, rate limiting and retries."""

from .client import AsyncClient, Client, new_async_client, new_client
from .decode import adecode_json, decode_json
from .exceptions import (
    ClinkDecodeError,
    ClinkError,
    ClinkRateLimitWaitError,
    ClinkRequestError,
    ClinkValidationError,
)
from .options import (
    ClientConfig,
    Option,
    build_config,
    with_backoff_unit,
    with_basic_auth,
    with_bearer_auth,
    with_header,
    with_headers,
    with_rate_limit,
    with_retries,
    with_transport,
    with_user_agent,
)
from .rate_limit import RateLimiter
from .retry import RetryPredicate, retry_on_error, retry_on_status

__version__ = "0.1.0"

__all__ = [
    "AsyncClient",
    "Client",
    "ClientConfig",
    "ClinkDecodeError",
    "ClinkError",
    "ClinkRateLimitWaitError",
    "ClinkRequestError",
    "ClinkValidationError",
    "Option",
    "RateLimiter",
    "RetryPredicate",
    "adecode_json",
    "build_config",
    "decode_json",
    "new_async_client",
    "new_client",
    "retry_on_error",
    "retry_on_status",
    "with_backoff_unit",
    "with_basic_auth",
    "with_bearer_auth",
    "with_header",
    "with_headers",
    "with_rate_limit",
    "with_retries",
    "with_transport",
    "with_user_agent",
]
