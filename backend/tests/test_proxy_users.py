"""Tests for the RouterLimits user proxy."""
from __future__ import annotations

import io
import json
from urllib import error as urllib_error

import pytest

from backend.app.proxy import ProxyUsersService


class FakeResponse:
    def __init__(self, status: int, body: bytes) -> None:
        self.status = status
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


class RecordingOpener:
    def __init__(self, response=None, error: Exception = None) -> None:
        self.requests = []
        self._response = response
        self._error = error

    def __call__(self, request, timeout=None):
        self.requests.append((request, timeout))
        if self._error is not None:
            raise self._error
        return self._response


@pytest.mark.asyncio
async def test_create_user_forwards_payload_with_api_key():
    opener = RecordingOpener(FakeResponse(201, b'{"id": "u1"}'))
    service = ProxyUsersService(api_url="https://rl.example.com/", api_key="rl-key", opener=opener)

    status_code, body = await service.create_user({"email": "ada@example.com"})

    assert (status_code, body) == (201, {"id": "u1"})
    request, timeout = opener.requests[0]
    assert request.full_url == "https://rl.example.com/users"
    assert request.get_method() == "POST"
    assert request.get_header("X-api-key") == "rl-key"
    assert json.loads(request.data) == {"email": "ada@example.com"}
    assert timeout == 10.0


@pytest.mark.asyncio
async def test_upstream_errors_are_relayed():
    upstream_error = urllib_error.HTTPError(
        "https://rl.example.com/users", 409, "Conflict", {}, io.BytesIO(b'{"message": "exists"}')
    )
    service = ProxyUsersService(
        api_url="https://rl.example.com", api_key=None, opener=RecordingOpener(error=upstream_error)
    )

    assert await service.create_user({"email": "ada@example.com"}) == (409, {"message": "exists"})


@pytest.mark.asyncio
async def test_non_json_bodies_are_wrapped():
    service = ProxyUsersService(
        api_url="https://rl.example.com", api_key=None, opener=RecordingOpener(FakeResponse(502, b"Bad Gateway"))
    )

    assert await service.create_user({}) == (502, {"message": "Bad Gateway"})


def test_proxy_route_relays_status(client, services):
    opener = RecordingOpener(FakeResponse(202, b'{"queued": true}'))
    services.proxy_users = ProxyUsersService(api_url="https://rl.example.com", api_key="k", opener=opener)

    response = client.post("/api/proxy/users", json={"email": "ada@example.com"})

    assert response.status_code == 202
    assert response.json() == {"queued": True}
