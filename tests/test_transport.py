"""
Tests for app/services/transport.py
"""

import asyncio

import httpx
import pytest

from app.services.errors import NetworkError, RequestTimeoutError
from app.services.transport import fetch_with_deadline


@pytest.mark.asyncio
async def test_returns_response_within_deadline():
    def handler(request):
        return httpx.Response(200, json={"ok": True})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        resp = await fetch_with_deadline(client, "GET", "https://bria.test/x", timeout=1.0)

    assert resp.json() == {"ok": True}


@pytest.mark.asyncio
async def test_slow_request_is_cancelled_at_deadline():
    state = {"finished": False}

    async def handler(request):
        await asyncio.sleep(1.0)
        state["finished"] = True
        return httpx.Response(200)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(RequestTimeoutError):
            await fetch_with_deadline(client, "GET", "https://bria.test/slow", timeout=0.05)
        await asyncio.sleep(0.05)

    assert state["finished"] is False


@pytest.mark.asyncio
async def test_timeout_error_is_a_builtin_timeout():
    async def handler(request):
        await asyncio.sleep(1.0)
        return httpx.Response(200)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(TimeoutError):
            await fetch_with_deadline(client, "GET", "https://bria.test/slow", timeout=0.05)


@pytest.mark.asyncio
async def test_connection_failure_becomes_network_error():
    def handler(request):
        raise httpx.ConnectError("name or service not known", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError):
            await fetch_with_deadline(client, "POST", "https://bria.test/x", timeout=1.0)


@pytest.mark.asyncio
async def test_redirect_loop_becomes_network_error():
    def handler(request):
        return httpx.Response(302, headers={"Location": "https://bria.test/loop"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError, match="TooManyRedirects"):
            await fetch_with_deadline(
                client, "GET", "https://bria.test/loop", timeout=1.0, follow_redirects=True
            )


@pytest.mark.asyncio
async def test_undecodable_body_becomes_network_error():
    def handler(request):
        return httpx.Response(
            200,
            headers={"Content-Encoding": "gzip"},
            stream=httpx.ByteStream(b"not gzip at all"),
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError, match="DecodingError"):
            await fetch_with_deadline(client, "GET", "https://bria.test/x", timeout=1.0)
