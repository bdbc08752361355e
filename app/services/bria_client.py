# app/services/bria_client.py

"""
Primary generator: Bria v2 `/image/generate` with a FIBO structured prompt.

Bria answers in one of two shapes:
  - sync:  { "result": { "image_url": ..., "seed": ... } }
  - async: { "request_id": ..., "status_url": ... }   -> poll status_url

The shape is classified into `Immediate` or `Pending` first, and only then
acted on, so both branches are explicit.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import BaseModel

from app.config import StudioSettings
from fibo.normalizer import normalize_scene, structured_prompt, transport_aspect_ratio
from fibo.schema import GenerationResult, GenerationSource, Scene

from .errors import GenerationError
from .poller import poll_until_terminal
from .transport import fetch_with_deadline

logger = logging.getLogger(__name__)


class Immediate(BaseModel):
    result: Dict[str, Any]


class Pending(BaseModel):
    status_url: str


SubmitOutcome = Union[Immediate, Pending]


def classify_response(data: Any) -> SubmitOutcome:
    """Map a 2xx generate body to Immediate(result) or Pending(status_url)."""
    if not isinstance(data, dict):
        raise GenerationError(f"Unexpected Bria response: {data!r}")

    result = data.get("result")
    if isinstance(result, dict) and result.get("image_url"):
        return Immediate(result=result)
    if data.get("image_url"):
        return Immediate(result=data)

    status_url = data.get("status_url")
    if status_url:
        return Pending(status_url=str(status_url))

    raise GenerationError("API success but no image_url in response.")


def _error_details(resp: httpx.Response) -> str:
    """Pull the most useful message out of a Bria error body."""
    text = resp.text
    try:
        body = resp.json()
    except ValueError:
        return text[:400]

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or ""
        details = error.get("details")
        if details:
            # pydantic validation details from the Bria schema check
            return f"{message} ({json.dumps(details)})"
        if message:
            return str(message)
    return text[:400]


def _echoed_seed(payload: Dict[str, Any], submitted: int) -> int:
    seed = payload.get("seed")
    if seed is None:
        return submitted
    try:
        return int(seed)
    except (TypeError, ValueError):
        return submitted


class BriaClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        settings: Optional[StudioSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or StudioSettings.from_env()
        self.api_key = api_key or self.settings.require_bria_token()
        self.base_url = self.settings.bria_base_url.rstrip("/")
        self._client = client

    @property
    def generate_url(self) -> str:
        return f"{self.base_url}/image/generate"

    def build_payload(self, scene: Scene, seed: int) -> Dict[str, Any]:
        """Request body: text summary + stringified structured prompt."""
        safe_scene = normalize_scene(scene)
        return {
            "prompt": safe_scene.short_description,
            "structured_prompt": json.dumps(structured_prompt(safe_scene)),
            "seed": seed,
            "aspect_ratio": transport_aspect_ratio(safe_scene),
            "sync": self.settings.bria_sync,
        }

    async def generate(self, scene: Scene, seed: int) -> GenerationResult:
        """
        Submit a scene and return the delivered image.

        Raises GenerationError (non-2xx, FAILED job, no image_url) or
        RequestTimeoutError / NetworkError from the transport and poller.
        """
        if self._client is not None:
            return await self._generate(self._client, scene, seed)
        async with httpx.AsyncClient() as client:
            return await self._generate(client, scene, seed)

    async def _generate(
        self, client: httpx.AsyncClient, scene: Scene, seed: int
    ) -> GenerationResult:
        payload = self.build_payload(scene, seed)
        headers = {
            "Content-Type": "application/json",
            "api_token": self.api_key,
        }

        logger.info("Submitting scene to Bria v2 (seed=%s, sync=%s)", seed, payload["sync"])
        resp = await fetch_with_deadline(
            client,
            "POST",
            self.generate_url,
            timeout=self.settings.submit_timeout,
            headers=headers,
            json=payload,
        )

        if resp.status_code >= 400:
            raise GenerationError(f"Bria API Error {resp.status_code}: {_error_details(resp)}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationError(f"Non-JSON response from Bria: {resp.text[:400]}") from exc

        outcome = classify_response(data)

        if isinstance(outcome, Immediate):
            return GenerationResult(
                url=outcome.result["image_url"],
                seed=_echoed_seed(outcome.result, seed),
                source=GenerationSource.PRIMARY_SYNC,
            )

        logger.info("Bria accepted job, polling %s", outcome.status_url)
        terminal = await poll_until_terminal(
            client,
            outcome.status_url,
            self.api_key,
            overall_timeout=self.settings.poll_overall_timeout,
            interval=self.settings.poll_interval,
            poll_timeout=self.settings.poll_timeout,
        )
        image_url = terminal.get("image_url")
        if not image_url:
            raise GenerationError(f"Bria job completed without image_url: {terminal}")

        return GenerationResult(
            url=image_url,
            seed=_echoed_seed(terminal, seed),
            source=GenerationSource.PRIMARY_ASYNC,
        )
