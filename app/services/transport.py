# app/services/transport.py

"""
Fetch-with-deadline over a shared `httpx.AsyncClient`.

Every Bria call goes through `fetch_with_deadline` so that a stuck request is
cancelled at its deadline instead of lingering past it, and so callers only
ever see our typed errors instead of raw httpx exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .errors import NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)


async def fetch_with_deadline(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    timeout: float,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue exactly one request and return the response.

    Raises:
        RequestTimeoutError: nothing arrived within `timeout` seconds. The
            in-flight request is cancelled.
        NetworkError: the request failed before any response (DNS, refused
            connection, protocol error, ...) or its body could not be
            decoded.
    """
    try:
        return await asyncio.wait_for(
            client.request(method, url, timeout=timeout, **kwargs),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        logger.warning("%s %s timed out after %.1fs", method, url, timeout)
        raise RequestTimeoutError(f"Request timed out after {timeout:g}s") from exc
    except httpx.TransportError as exc:
        logger.warning("%s %s failed: %s", method, url, exc.__class__.__name__)
        raise NetworkError(f"{exc.__class__.__name__}: {exc}") from exc
    except httpx.RequestError as exc:
        # undecodable body, redirect loop and the like
        logger.warning("%s %s failed: %s", method, url, exc.__class__.__name__)
        raise NetworkError(f"{exc.__class__.__name__}: {exc}") from exc
