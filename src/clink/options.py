"""Client configuration and the option functions that build it."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import reduce
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .exceptions import ClinkValidationError
from .rate_limit import RateLimiter
from .retry import RetryPredicate
from .security import basic_auth_value, bearer_auth_value


@dataclass(frozen=True)
class ClientConfig:
    transport: Any = None
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    rate_limiter: RateLimiter | None = None
    max_retries: int = 0
    retry_predicate: RetryPredicate | None = None
    backoff_unit: float = 1.0


Option = Callable[[ClientConfig], ClientConfig]


def _merge_headers(current: Mapping[str, str], updates: Mapping[str, str]) -> Mapping[str, str]:
    merged = dict(current)
    for key, value in updates.items():
        key = str(key)
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = str(value)
    return MappingProxyType(merged)


def build_config(*options: Option) -> ClientConfig:
    """Apply ``options`` in order to a default configuration."""
    return reduce(lambda config, option: option(config), options, ClientConfig())


def with_transport(transport: Any) -> Option:
    """Use ``transport`` (an ``httpx.Client`` or ``httpx.AsyncClient``) to send requests."""

    def apply(config: ClientConfig) -> ClientConfig:
        return replace(config, transport=transport)

    return apply


def with_header(key: str, value: str) -> Option:
    def apply(config: ClientConfig) -> ClientConfig:
        return replace(config, headers=_merge_headers(config.headers, {key: value}))

    return apply


def with_headers(headers: Mapping[str, str]) -> Option:
    snapshot = dict(headers)

    def apply(config: ClientConfig) -> ClientConfig:
        return replace(config, headers=_merge_headers(config.headers, snapshot))

    return apply


def with_rate_limit(requests_per_minute: float) -> Option:
    """Space requests evenly so no more than ``requests_per_minute`` are sent.

    Clients built from the same option object share one limiter.
    """
    limiter = RateLimiter.per_minute(requests_per_minute)

    def apply(config: ClientConfig) -> ClientConfig:
        return replace(config, rate_limiter=limiter)

    return apply


def with_basic_auth(username: str, password: str) -> Option:
    return with_header("Authorization", basic_auth_value(username, password))


def with_bearer_auth(token: str) -> Option:
    return with_header("Authorization", bearer_auth_value(token))


def with_user_agent(user_agent: str) -> Option:
    return with_header("User-Agent", user_agent)


def with_retries(count: int, predicate: RetryPredicate | None) -> Option:
    """Allow up to ``count`` retries after the first attempt.

    ``predicate`` is consulted after each attempt; it must return ``True`` to
    keep retrying and ``False`` to stop. ``None`` means every attempt runs.
    """
    if count < 0:
        raise ClinkValidationError("max_retries must be non-negative")

    def apply(config: ClientConfig) -> ClientConfig:
        return replace(config, max_retries=int(count), retry_predicate=predicate)

    return apply


def with_backoff_unit(seconds: float) -> Option:
    """Set the length of one linear backoff step (attempt ``n`` waits ``n`` units)."""
    if seconds < 0:
        raise ClinkValidationError("backoff unit must be non-negative")

    def apply(config: ClientConfig) -> ClientConfig:
        return replace(config, backoff_unit=float(seconds))

    return apply
