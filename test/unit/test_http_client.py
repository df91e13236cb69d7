"""Unit tests for the shared HTTP client wrapper."""

from __future__ import annotations

import logging

import httpx
import pytest

from services.http_client import HttpClient


def _client(handler) -> HttpClient:
    return HttpClient(
        timeout=5,
        headers={"X-Client": "assistant"},
        transport=httpx.MockTransport(handler),
    )


def test_request_merges_default_headers() -> None:
    """Default, per-request, and Accept headers are all sent."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    response = _client(handler).post("http://api.test/ping", headers={"X-Trace": "t-1"})

    assert response.json() == {"ok": True}
    assert seen[0].headers["X-Client"] == "assistant"
    assert seen[0].headers["X-Trace"] == "t-1"
    assert seen[0].headers["Accept"] == "application/json"


def test_status_errors_raise_and_log(caplog) -> None:
    """Error statuses raise immediately and are logged once, without retries."""
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="server exploded")

    with caplog.at_level(logging.ERROR, logger="services.http_client"):
        with pytest.raises(httpx.HTTPStatusError):
            _client(handler).post("http://api.test/tasks", json={})

    assert len(calls) == 1
    assert "status 500" in caplog.text


def test_transport_errors_raise() -> None:
    """Connection failures propagate as request errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(httpx.ConnectError):
        _client(handler).put("http://api.test/notes", content=b"x")

