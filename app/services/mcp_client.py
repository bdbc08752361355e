# app/services/mcp_client.py

"""
Fallback generator: Bria's MCP server, called as a JSON-RPC `tools/call`.

Only the scene's short_description is sent; the MCP `text_to_image` tool does
not take a structured prompt. The tool answers with a list of content items
and the image URL shows up either inside a text item or as an image item.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Dict, Iterable, Optional

import httpx

from app.config import StudioSettings
from fibo.normalizer import normalize_scene, transport_aspect_ratio
from fibo.schema import GenerationResult, GenerationSource, Scene

from .errors import GenerationError
from .transport import fetch_with_deadline

logger = logging.getLogger(__name__)

TOOL_NAME = "text_to_image"

_URL_RE = re.compile(r"https?://[^\s\"']+")


def build_rpc_payload(scene: Scene, seed: int, request_id: Optional[str] = None) -> Dict[str, Any]:
    safe_scene = normalize_scene(scene)
    return {
        "jsonrpc": "2.0",
        "id": request_id or uuid.uuid4().hex,
        "method": "tools/call",
        "params": {
            "name": TOOL_NAME,
            "arguments": {
                "prompt": safe_scene.short_description,
                "aspect_ratio": transport_aspect_ratio(safe_scene),
                "num_results": 1,
                "seed": seed,
            },
        },
    }


def extract_image_url(content: Iterable[Any]) -> Optional[str]:
    """First image URL found in MCP tool content, in content order."""
    for item in content:
        if not isinstance(item, dict):
            continue
        kind = item.get("type")
        if kind == "text":
            match = _URL_RE.search(str(item.get("text") or ""))
            if match:
                return match.group(0)
        elif kind == "image" and item.get("url"):
            return str(item["url"])
    return None


class BriaMCPClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        settings: Optional[StudioSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or StudioSettings.from_env()
        self.api_key = api_key or self.settings.require_mcp_token()
        self.url = self.settings.bria_mcp_url
        self._client = client

    async def generate(self, scene: Scene, seed: int) -> GenerationResult:
        if self._client is not None:
            return await self._generate(self._client, scene, seed)
        async with httpx.AsyncClient() as client:
            return await self._generate(client, scene, seed)

    async def _generate(
        self, client: httpx.AsyncClient, scene: Scene, seed: int
    ) -> GenerationResult:
        payload = build_rpc_payload(scene, seed)
        headers = {
            "Content-Type": "application/json",
            "api_token": self.api_key,
        }

        logger.info("Calling Bria MCP %s (id=%s)", TOOL_NAME, payload["id"])
        resp = await fetch_with_deadline(
            client,
            "POST",
            self.url,
            timeout=self.settings.fallback_timeout,
            headers=headers,
            json=payload,
        )
        if resp.status_code >= 400:
            raise GenerationError(f"MCP Error {resp.status_code}: {resp.text[:400]}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationError(f"Non-JSON response from MCP: {resp.text[:400]}") from exc

        if not isinstance(data, dict):
            raise GenerationError(f"Unexpected MCP response: {data!r}")
        if data.get("error"):
            raise GenerationError(f"MCP error: {data['error']}")

        result = data.get("result") or {}
        content = result.get("content") if isinstance(result, dict) else None
        url = extract_image_url(content or [])
        if not url:
            raise GenerationError("No URL in MCP response")

        return GenerationResult(url=url, seed=seed, source=GenerationSource.FALLBACK)
