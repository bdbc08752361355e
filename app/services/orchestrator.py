# app/services/orchestrator.py

"""Primary (Bria v2 REST) first, MCP fallback second, one seed for both."""

from __future__ import annotations

import logging
import random
from typing import Awaitable, Optional, Protocol

from fibo.schema import GenerationResult, Scene

from .errors import GenerationError

logger = logging.getLogger(__name__)

MAX_SEED = 10_000_000


class ImageStrategy(Protocol):
    def generate(self, scene: Scene, seed: int) -> Awaitable[GenerationResult]:
        ...


class GenerationOrchestrator:
    def __init__(
        self,
        primary: ImageStrategy,
        fallback: Optional[ImageStrategy] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self._rng = rng or random.Random()

    def new_seed(self) -> int:
        return self._rng.randrange(MAX_SEED)

    async def generate(self, scene: Scene) -> GenerationResult:
        """
        Deliver one image for `scene` or raise GenerationError.

        If both strategies fail the primary's message is surfaced; the
        fallback error is only logged.
        """
        seed = self.new_seed()

        try:
            return await self.primary.generate(scene, seed)
        except Exception as primary_exc:  # noqa: BLE001 - converted below
            logger.warning("Primary strategy failed: %s", primary_exc)
            primary_error = primary_exc

        if self.fallback is None:
            raise GenerationError(f"Generation Failed: {primary_error}") from primary_error

        logger.info("Falling back to MCP (seed=%s)", seed)
        try:
            return await self.fallback.generate(scene, seed)
        except Exception as fallback_exc:  # noqa: BLE001 - primary error wins
            logger.warning("Fallback strategy failed: %s", fallback_exc)

        raise GenerationError(f"Generation Failed: {primary_error}") from primary_error
