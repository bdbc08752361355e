# app/services/poller.py

"""
Poll a Bria async job until it reaches a terminal state.

    SUBMITTED -> (RUNNING ->)* COMPLETED | FAILED

A single flaky poll (network hiccup, per-poll timeout, 5xx, non-JSON body)
is logged and skipped. Only the overall deadline stops the loop early.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from .errors import BriaClientError, GenerationError, RequestTimeoutError
from .transport import fetch_with_deadline

logger = logging.getLogger(__name__)

POLL_INTERVAL_SEC = 2.0
POLL_TIMEOUT_SEC = 10.0


class JobStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, raw: Any) -> Optional["JobStatus"]:
        value = str(raw or "").strip().upper()
        if value == "IN_PROGRESS":
            return cls.RUNNING
        try:
            return cls(value)
        except ValueError:
            return None


def _failure_reason(data: Dict[str, Any]) -> str:
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("details") or error)
    if error:
        return str(error)
    return "Bria job failed without a reason"


async def poll_until_terminal(
    client: httpx.AsyncClient,
    status_url: str,
    api_token: str,
    *,
    overall_timeout: float,
    interval: float = POLL_INTERVAL_SEC,
    poll_timeout: float = POLL_TIMEOUT_SEC,
) -> Dict[str, Any]:
    """
    Return the COMPLETED payload (the `result` block when present).

    Raises:
        GenerationError: the job reported FAILED. No further polls are made.
        RequestTimeoutError: no terminal state before `overall_timeout`.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + overall_timeout
    headers = {"api_token": api_token}
    attempt = 0

    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            break

        attempt += 1
        try:
            resp = await fetch_with_deadline(
                client,
                "GET",
                status_url,
                timeout=min(poll_timeout, remaining),
                headers=headers,
            )
            if resp.status_code >= 500:
                raise BriaClientError(f"status endpoint returned {resp.status_code}")
            if resp.status_code >= 400:
                raise GenerationError(
                    f"Bria status error {resp.status_code}: {resp.text[:400]}"
                )
            data = resp.json()
            if not isinstance(data, dict):
                raise ValueError("status body is not a JSON object")
        except GenerationError:
            raise
        except (BriaClientError, ValueError) as exc:
            # transient: keep polling until the overall deadline
            logger.warning("Poll #%d of %s failed, retrying: %s", attempt, status_url, exc)
        else:
            status = JobStatus.parse(data.get("status"))
            if status is JobStatus.COMPLETED:
                logger.info("Job %s completed after %d poll(s)", status_url, attempt)
                result = data.get("result")
                return result if isinstance(result, dict) else data
            if status is JobStatus.FAILED:
                raise GenerationError(f"Bria job failed: {_failure_reason(data)}")
            if status is None:
                logger.warning("Poll #%d of %s: unknown status %r", attempt, status_url, data.get("status"))
            else:
                logger.debug("Poll #%d of %s: %s", attempt, status_url, status.value)

        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval, remaining))

    raise RequestTimeoutError(
        f"Bria job did not finish within {overall_timeout:g}s ({attempt} poll(s))"
    )
