# app/config.py

"""
Environment / API key setup.

Everything is read from the process environment after `load_dotenv()`, so a
local `.env` works the same as deployment secrets:

  BRIA_API_TOKEN=...          # Bria v2 REST (primary)
  BRIA_MCP_API_TOKEN=...      # Bria MCP (fallback), separate credential
  GEMINI_API_KEY=...          # prompt interpreter
  BRIA_SYNC=0                 # 1 -> ask Bria for an immediate result
  BATCH_STAGGER_SEC=0.3
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from app.services.errors import BriaConfigError

load_dotenv()

BRIA_V2_BASE_URL = "https://engine.prod.bria-api.com/v2"
BRIA_MCP_URL = "https://mcp.prod.bria-api.com/mcp"
GEMINI_MODEL = "gemini-2.5-flash"


def _env(*names: str) -> Optional[str]:
    """First non-blank value among `names` (later names are legacy aliases)."""
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise BriaConfigError(f"{name} must be a number, got {raw!r}")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw in {"1", "true", "True", "yes"}


class StudioSettings(BaseModel):
    bria_api_token: Optional[str] = None
    bria_mcp_api_token: Optional[str] = None
    bria_base_url: str = BRIA_V2_BASE_URL
    bria_mcp_url: str = BRIA_MCP_URL
    bria_sync: bool = False

    # Deadlines (seconds)
    submit_timeout: float = 90.0
    fallback_timeout: float = 60.0
    poll_timeout: float = 10.0
    poll_overall_timeout: float = 120.0
    poll_interval: float = 2.0

    batch_stagger: float = 0.3
    batch_size: int = 4

    gemini_api_key: Optional[str] = None
    gemini_model: str = GEMINI_MODEL

    @classmethod
    def from_env(cls) -> "StudioSettings":
        batch_size = int(_env_float("BATCH_SIZE", 4))
        if batch_size < 1:
            raise BriaConfigError(f"BATCH_SIZE must be at least 1, got {batch_size}")
        # Prefer BRIA_API_TOKEN, but fall back to BRIA_API_KEY for backwards compat
        return cls(
            bria_api_token=_env("BRIA_API_TOKEN", "BRIA_API_KEY"),
            bria_mcp_api_token=_env("BRIA_MCP_API_TOKEN", "BRIA_MCP_API_KEY"),
            bria_base_url=_env("BRIA_BASE_URL") or BRIA_V2_BASE_URL,
            bria_mcp_url=_env("BRIA_MCP_URL") or BRIA_MCP_URL,
            bria_sync=_env_flag("BRIA_SYNC"),
            submit_timeout=_env_float("BRIA_SUBMIT_TIMEOUT_SEC", 90.0),
            fallback_timeout=_env_float("BRIA_MCP_TIMEOUT_SEC", 60.0),
            poll_timeout=_env_float("BRIA_POLL_TIMEOUT_SEC", 10.0),
            poll_overall_timeout=_env_float("BRIA_POLL_OVERALL_TIMEOUT_SEC", 120.0),
            poll_interval=_env_float("BRIA_POLL_INTERVAL_SEC", 2.0),
            batch_stagger=_env_float("BATCH_STAGGER_SEC", 0.3),
            batch_size=batch_size,
            gemini_api_key=_env("GEMINI_API_KEY", "API_KEY"),
            gemini_model=_env("GEMINI_MODEL") or GEMINI_MODEL,
        )

    def require_bria_token(self) -> str:
        if not self.bria_api_token:
            raise BriaConfigError(
                "BRIA_API_TOKEN / BRIA_API_KEY is not set. "
                "Please add it to your .env file or environment."
            )
        return self.bria_api_token

    def require_mcp_token(self) -> str:
        if not self.bria_mcp_api_token:
            raise BriaConfigError(
                "BRIA_MCP_API_TOKEN is not set. Add it to your .env or environment variables."
            )
        return self.bria_mcp_api_token
