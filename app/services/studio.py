# app/services/studio.py

"""
Studio session: the state machine behind the "Compile Scene -> Image" button.

Modes of `generate`:
  - fresh:      no current scenes, prompt given       -> interpret, history "Generation"
  - refinement: current scene + prompt, not batch     -> interpret with previous JSON
  - re-render:  current scenes, empty prompt          -> render as-is, history "Manual"
  - batch:      batch_mode                            -> N variants, history "Batch" (first)

Every successful path ends in a new render round on the batch scheduler.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from fibo.normalizer import normalize_scene
from fibo.presets import ProControls, build_constraints, load_blueprint
from fibo.schema import GenerationResult, HistoryItem, Provenance, Scene

from .batch import BatchScheduler, RenderRound
from .errors import StudioError
from .history import HistoryStore

logger = logging.getLogger(__name__)


class StudioSession:
    def __init__(
        self,
        interpreter: Any,
        scheduler: BatchScheduler,
        history: Optional[HistoryStore] = None,
        *,
        batch_size: int = 4,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.interpreter = interpreter
        self.scheduler = scheduler
        self.history = history or HistoryStore()
        self.batch_size = batch_size

        self.scenes: List[Scene] = []
        self.selected_index = 0
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def current_scene(self) -> Optional[Scene]:
        if not self.scenes:
            return None
        return self.scenes[min(self.selected_index, len(self.scenes) - 1)]

    @property
    def current_round(self) -> Optional[RenderRound]:
        return self.scheduler.active

    @property
    def results(self) -> List[Optional[GenerationResult]]:
        rnd = self.scheduler.active
        return list(rnd.slots) if rnd is not None else []

    @property
    def is_rendering(self) -> bool:
        rnd = self.scheduler.active
        return rnd is not None and not rnd.complete

    # ------------------------------------------------------------------
    # Generate / refine / re-render
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: str = "",
        *,
        batch_mode: bool = False,
        controls: Optional[ProControls] = None,
        workflow_id: Optional[str] = None,
    ) -> RenderRound:
        prompt = (prompt or "").strip()
        if not prompt and not self.scenes:
            raise ValueError("Nothing to generate: enter a prompt or load a blueprint.")

        self.last_error = None
        is_rerender = bool(self.scenes) and not prompt
        is_refinement = bool(self.scenes) and bool(prompt) and not batch_mode
        if not is_rerender and not is_refinement:
            # fresh and batch generations start from an empty canvas
            self._clear_canvas()

        if is_rerender:
            scenes = list(self.scenes)
            self.history.append(self.current_scene, Provenance.MANUAL)
        else:
            constraints = build_constraints(controls, workflow_id)
            try:
                if batch_mode:
                    scenes = await self.interpreter.interpret_batch(
                        prompt, self.batch_size, constraints
                    )
                    self.history.append(scenes[0], Provenance.BATCH)
                else:
                    previous = self.current_scene if is_refinement else None
                    scene = await self.interpreter.interpret(prompt, constraints, previous)
                    scenes = [scene]
                    self.history.append(scene, Provenance.GENERATION)
            except StudioError as exc:
                self.last_error = str(exc) or "Failed to interpret prompt"
                logger.error("Interpretation failed: %s", exc)
                raise
            self.scenes = scenes
            self.selected_index = 0

        return self.scheduler.render_all(scenes)

    # ------------------------------------------------------------------
    # Editing, library, history
    # ------------------------------------------------------------------

    def update_scene(self, data: Mapping[str, Any]) -> Scene:
        """Manual JSON edit of the selected scene (no history entry until re-render)."""
        scene = normalize_scene(data)
        if not self.scenes:
            self.scenes = [scene]
            self.selected_index = 0
        else:
            scenes = list(self.scenes)
            scenes[self.selected_index] = scene
            self.scenes = scenes
        return scene

    def load_blueprint(self, blueprint_id: str) -> Scene:
        scene = load_blueprint(blueprint_id)
        self.scenes = [scene]
        self.selected_index = 0
        self.history.append(scene, Provenance.LIBRARY)
        return scene

    def restore(self, item_id: str) -> Scene:
        """Make a history entry the current scene. The log itself is untouched."""
        item: HistoryItem = self.history.get(item_id)
        scene = item.scene.model_copy(deep=True)
        self.scenes = [scene]
        self.selected_index = 0
        return scene

    def select(self, index: int) -> Scene:
        if not 0 <= index < len(self.scenes):
            raise IndexError(f"No scene at index {index}")
        self.selected_index = index
        return self.scenes[index]

    def reset(self) -> None:
        self._clear_canvas()
        self.last_error = None

    def _clear_canvas(self) -> None:
        self.scenes = []
        self.selected_index = 0
        rnd = self.scheduler.active
        if rnd is not None:
            # late writes from this round are dropped once it is no longer active
            rnd.superseded = not rnd.complete
            self.scheduler.active = None

    def dismiss_error(self) -> None:
        self.last_error = None

    def snapshot(self) -> Dict[str, Any]:
        rnd = self.scheduler.active
        return {
            "scenes": [scene.to_json_dict() for scene in self.scenes],
            "selected_index": self.selected_index,
            "round": rnd.token if rnd is not None else None,
            "is_rendering": self.is_rendering,
            "results": [
                None if slot is None else {**slot.model_dump(mode="json"), "label": slot.label}
                for slot in self.results
            ],
            "last_error": self.last_error,
        }
