from __future__ import annotations

import asyncio

import httpx
import pytest
from pydantic import BaseModel

from clink import ClinkDecodeError, adecode_json, decode_json


class Item(BaseModel):
    id: int
    name: str


def test_decode_json_into_string_map() -> None:
    response = httpx.Response(200, content=b'{"key": "value"}')

    assert decode_json(response, dict[str, str]) == {"key": "value"}
    assert response.is_closed


def test_decode_json_without_target_returns_plain_data() -> None:
    response = httpx.Response(200, json={"items": [1, 2]})

    assert decode_json(response) == {"items": [1, 2]}


def test_decode_json_into_model() -> None:
    response = httpx.Response(200, json={"id": 7, "name": "seven"})

    item = decode_json(response, Item)

    assert item == Item(id=7, name="seven")


def test_decode_json_rejects_missing_response() -> None:
    with pytest.raises(ClinkDecodeError) as excinfo:
        decode_json(None)

    assert str(excinfo.value) == "response is nil"


def test_decode_json_rejects_consumed_body() -> None:
    response = httpx.Response(200, content=iter([b'{"key": ', b'"value"}']))
    list(response.iter_raw())

    with pytest.raises(ClinkDecodeError) as excinfo:
        decode_json(response, dict[str, str])

    assert str(excinfo.value) == "response body is nil"
    assert response.is_closed


@pytest.mark.parametrize("target", [None, dict[str, str]])
def test_decode_json_reports_truncated_payload(target) -> None:
    response = httpx.Response(200, content=b'{"key": "value')

    with pytest.raises(ClinkDecodeError, match="failed to decode response") as excinfo:
        decode_json(response, target)

    assert excinfo.value.__cause__ is not None
    assert response.is_closed


def test_decode_json_reports_shape_mismatch() -> None:
    response = httpx.Response(200, json={"id": "not-a-number"})

    with pytest.raises(ClinkDecodeError, match="failed to decode response"):
        decode_json(response, Item)


def test_adecode_json_matches_sync_behaviour() -> None:
    async def run() -> tuple[object, httpx.Response]:
        response = httpx.Response(200, content=b'{"key": "value"}')
        return await adecode_json(response, dict[str, str]), response

    decoded, response = asyncio.run(run())
    assert decoded == {"key": "value"}
    assert response.is_closed

    with pytest.raises(ClinkDecodeError, match="response is nil"):
        asyncio.run(adecode_json(None))


def test_decode_error_message_is_the_plain_message() -> None:
    error = ClinkDecodeError("response is nil")

    assert str(error) == "response is nil"
    assert error.cause is None
