"""Helpers that decode JSON response bodies."""

from __future__ import annotations

import json
from typing import Any, TypeVar, overload

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import ClinkDecodeError

T = TypeVar("T")


def _decode(response: httpx.Response, content: bytes, target: Any) -> Any:
    try:
        if target is None:
            return json.loads(content)
        return TypeAdapter(target).validate_json(content)
    except (ValueError, ValidationError) as exc:
        raise ClinkDecodeError(
            f"failed to decode response: {exc}",
            response=response,
            cause=exc,
        ) from exc


@overload
def decode_json(response: httpx.Response | None, target: type[T]) -> T: ...


@overload
def decode_json(response: httpx.Response | None, target: None = None) -> Any: ...


def decode_json(response: httpx.Response | None, target: Any = None) -> Any:
    """Decode ``response`` as JSON, optionally validated into ``target``.

    ``target`` may be any type pydantic can validate (``dict[str, str]``, a
    ``BaseModel`` subclass, a ``TypedDict``...). The response is closed on
    every exit path.
    """
    if response is None:
        raise ClinkDecodeError("response is nil")

    try:
        try:
            content = response.read()
        except httpx.StreamError as exc:
            raise ClinkDecodeError("response body is nil", response=response, cause=exc) from exc
        return _decode(response, content, target)
    finally:
        response.close()


async def adecode_json(response: httpx.Response | None, target: Any = None) -> Any:
    if response is None:
        raise ClinkDecodeError("response is nil")

    try:
        try:
            content = await response.aread()
        except httpx.StreamError as exc:
            raise ClinkDecodeError("response body is nil", response=response, cause=exc) from exc
        return _decode(response, content, target)
    finally:
        await response.aclose()
