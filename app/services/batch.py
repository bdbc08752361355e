# app/services/batch.py

"""
Batch rendering: one orchestrator call per scene, staggered in time.

Each call to `render_all` starts a new round with its own slot storage and a
round token. Slot i is issued no earlier than `i * stagger` seconds after the
round started (to stay under upstream rate limits), resolves independently of
the other slots, and is written by replacing the round's slot tuple. A task
whose round is no longer the active one has its write dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from fibo.schema import GenerationResult, Scene

logger = logging.getLogger(__name__)

DEFAULT_STAGGER_SEC = 0.3

Slot = Optional[GenerationResult]


class Generator(Protocol):
    def generate(self, scene: Scene) -> Awaitable[GenerationResult]:
        ...


class RenderRound:
    """Slot storage and completion state for one batch round."""

    def __init__(self, token: int, size: int, started_at: float) -> None:
        self.token = token
        self.started_at = started_at
        self.slots: Tuple[Slot, ...] = (None,) * size
        self.issued_at: List[Optional[float]] = [None] * size
        self.superseded = False
        self._remaining = size
        self._done = asyncio.Event()
        self._tasks: List["asyncio.Task[None]"] = []
        if size == 0:
            self._done.set()

    @property
    def size(self) -> int:
        return len(self.slots)

    @property
    def complete(self) -> bool:
        return self._done.is_set()

    @property
    def pending(self) -> int:
        return sum(1 for slot in self.slots if slot is None)

    async def wait(self) -> Tuple[Slot, ...]:
        """Wait until every task of this round has settled."""
        await self._done.wait()
        return self.slots

    def _settle(self) -> bool:
        """Count one finished task; True exactly once, for the last one."""
        self._remaining -= 1
        if self._remaining == 0:
            self._done.set()
            return True
        return False


RoundCallback = Callable[[RenderRound], None]


class BatchScheduler:
    def __init__(
        self,
        orchestrator: Generator,
        *,
        stagger: float = DEFAULT_STAGGER_SEC,
        on_update: Optional[RoundCallback] = None,
        on_complete: Optional[RoundCallback] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.stagger = stagger
        self.on_update = on_update
        self.on_complete = on_complete
        self.active: Optional[RenderRound] = None
        self._tokens = itertools.count(1)

    def render_all(self, scenes: Sequence[Scene]) -> RenderRound:
        """
        Start a new round and return it immediately.

        Must be called from inside a running event loop. Any round still in
        flight is superseded: its late results never reach the new slots.
        """
        loop = asyncio.get_running_loop()
        scenes = list(scenes)

        if self.active is not None and not self.active.complete:
            logger.info("Round %d superseded by a new round", self.active.token)
            self.active.superseded = True

        rnd = RenderRound(next(self._tokens), len(scenes), loop.time())
        self.active = rnd
        logger.info("Round %d: rendering %d scene(s), stagger %.2fs", rnd.token, rnd.size, self.stagger)
        self._notify(self.on_update, rnd)

        if not scenes:
            self._notify(self.on_complete, rnd)
            return rnd

        for index, scene in enumerate(scenes):
            task = loop.create_task(self._run_slot(rnd, index, scene))
            rnd._tasks.append(task)
        return rnd

    async def _run_slot(self, rnd: RenderRound, index: int, scene: Scene) -> None:
        loop = asyncio.get_running_loop()
        issue_at = rnd.started_at + index * self.stagger
        delay = issue_at - loop.time()
        while delay > 0:
            await asyncio.sleep(delay)
            delay = issue_at - loop.time()

        rnd.issued_at[index] = loop.time()
        try:
            result = await self.orchestrator.generate(scene)
        except Exception as exc:  # noqa: BLE001 - one slot must not abort the round
            logger.error("Generation failed for round %d slot %d: %s", rnd.token, index, exc)
            reason = str(exc) or exc.__class__.__name__
            result = GenerationResult.failed(reason[:200])

        self._write(rnd, index, result)

    def _write(self, rnd: RenderRound, index: int, result: GenerationResult) -> None:
        is_last = rnd._settle()

        if rnd is not self.active:
            logger.info("Dropping stale result for round %d slot %d", rnd.token, index)
            return

        slots = list(rnd.slots)
        slots[index] = result
        rnd.slots = tuple(slots)
        self._notify(self.on_update, rnd)

        if is_last:
            logger.info("Round %d complete", rnd.token)
            self._notify(self.on_complete, rnd)

    @staticmethod
    def _notify(callback: Optional[RoundCallback], rnd: RenderRound) -> None:
        if callback is None:
            return
        try:
            callback(rnd)
        except Exception:  # noqa: BLE001 - observers never break the round
            logger.exception("Round %d callback failed", rnd.token)
