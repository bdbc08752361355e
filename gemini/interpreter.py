"""
gemini/interpreter.py

Prompt Interpreter Agent: turn a free-text creative request into a FIBO
structured prompt with Gemini.

- `interpret` writes (or refines) one Scene
- `interpret_batch` writes N distinct variations of one concept and always
  returns exactly N scenes (see `fit_variations`)

Gemini calls are blocking, so they run in a worker thread and the event loop
keeps serving in-flight generations meanwhile.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import google.generativeai as genai  # pip install google-generativeai

from app.config import StudioSettings
from app.services.errors import BatchEmptyError, InterpretationError
from fibo.normalizer import normalize_scene
from fibo.schema import Scene

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Prompt + JSON schema
# ---------------------------------------------------------------------------

JSON_SCHEMA = """
{
  "short_description": "comprehensive summary of the visual scene",
  "objects": [
    {
      "description": "string (required)",
      "location": "string",
      "relationship": "string",
      "relative_size": "string",
      "shape_and_color": "string",
      "texture": "string",
      "appearance_details": "string",
      "number_of_objects": "int",
      "orientation": "string"
    }
  ],
  "background_setting": "detailed description of the background",
  "lighting": {"conditions": "e.g. 'Golden hour'", "direction": "string", "shadows": "string"},
  "aesthetics": {"composition": "e.g. 'Rule of thirds'", "color_scheme": "string", "mood_atmosphere": "string"},
  "photographic_characteristics": {
    "depth_of_field": "e.g. 'Shallow'",
    "focus": "string",
    "camera_angle": "e.g. 'Low angle'",
    "lens_focal_length": "e.g. '85mm'"
  },
  "style_medium": "photograph | digital_art | 3d_render | oil_painting",
  "context": "e.g. 'e-commerce', 'editorial', 'cinematic concept'",
  "artistic_style": "e.g. 'realistic', 'surreal', 'minimalist'",
  "aspect_ratio": "1:1 | 16:9 | 9:16 | 4:3"
}
""".strip()

SYSTEM_INSTRUCTION = f"""
You are the "Prompt Interpreter Agent" for FIBO Studio OS.
Your goal is to convert vague natural language user requests into a STRICT
deterministic JSON blueprint for the Bria/FIBO image generation engine.

Rules:
1. You must output valid JSON matching this "Structured Prompt" schema:

{JSON_SCHEMA}

2. "objects" must be a list of detailed object descriptions.
3. "photographic_characteristics" must use professional photography terms
   (e.g. "85mm lens", "f/1.8", "low angle").
4. "lighting" must describe conditions, direction, and shadows explicitly.
5. "context" and "artistic_style" are MANDATORY.
6. Be highly descriptive in "short_description" as it acts as a fallback/summary.

Return ONLY valid JSON. Do not include explanations, markdown, or text
outside the JSON object.
""".strip()

GENERATION_CONFIG: Dict[str, Any] = {
    "temperature": 0.7,
    "response_mime_type": "application/json",
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_prompt(prompt: str, constraints: str = "", previous: Optional[Scene] = None) -> str:
    final_prompt = prompt
    if previous is not None:
        final_prompt = (
            "CURRENT STRUCTURED PROMPT:\n"
            f"{json.dumps(previous.to_json_dict())}\n\n"
            "USER REFINEMENT REQUEST:\n"
            f'"{prompt}"\n\n'
            "INSTRUCTIONS:\n"
            "Update the CURRENT JSON to satisfy the USER REFINEMENT REQUEST.\n"
            "Keep all other parameters (objects, lighting, camera) consistent "
            "unless asked to change."
        )
    if constraints:
        final_prompt += f"\n\n[VISUAL DIRECTOR CONSTRAINTS]: {constraints}"
    return final_prompt


def _build_batch_prompt(prompt: str, count: int, constraints: str = "") -> str:
    final_prompt = (
        f"STRICT INSTRUCTION: Generate EXACTLY {count} unique variations for the "
        f'following concept: "{prompt}".\n\n'
        f'You MUST output a JSON object containing a "variations" array with '
        f"exactly {count} items, each matching the Structured Prompt schema.\n\n"
        f"Vary these parameters across the {count} items to create distinct looks:\n"
        "- Camera Angle (e.g., one low angle, one high angle)\n"
        "- Lighting Direction (e.g., one side lit, one backlit)\n"
        "- Composition (e.g., one centered, one wide)"
    )
    if constraints:
        final_prompt += f"\n\n[VISUAL DIRECTOR CONSTRAINTS (Apply to all)]: {constraints}"
    return final_prompt


def _parse_gemini_json(resp: Any) -> Any:
    """
    Parse JSON output from Gemini.

    We request `response_mime_type='application/json'`, but still defend
    against text wrapped in markdown fences or trailing chatter.
    """
    text = getattr(resp, "text", "") or ""
    if not text:
        raise InterpretationError("No JSON returned from Gemini")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except json.JSONDecodeError as exc:
                logger.error("Failed to parse JSON snippet from Gemini: %s", exc)
        raise InterpretationError(f"Failed to parse JSON from Gemini response: {text[:400]}")


def fit_variations(variations: List[Scene], count: int) -> List[Scene]:
    """
    Force a batch to exactly `count` scenes.

    Extra scenes are dropped. Missing ones are cloned round-robin from what
    the model did return, with " (Variant N)" appended to the clone's
    short_description, N being the clone's 1-based position in the batch.
    """
    if count <= 0:
        return []
    if not variations:
        raise BatchEmptyError("Batch generation yielded zero results.")

    fitted = list(variations[:count])
    original_count = len(fitted)
    if original_count < count:
        logger.warning("[Batch Agent] Model returned %d/%d. Padding...", original_count, count)

    i = 0
    while len(fitted) < count:
        source = fitted[i % original_count]
        clone = source.model_copy(
            update={"short_description": f"{source.short_description} (Variant {len(fitted) + 1})"},
            deep=True,
        )
        fitted.append(clone)
        i += 1
    return fitted


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class SceneInterpreter:
    def __init__(
        self,
        model: Any = None,
        *,
        settings: Optional[StudioSettings] = None,
    ) -> None:
        self.settings = settings or StudioSettings.from_env()
        self._model = model

    def _get_model(self) -> Any:
        """Build the Gemini model on first use (helps if we ever swap configs)."""
        if self._model is None:
            if not self.settings.gemini_api_key:
                raise InterpretationError(
                    "GEMINI_API_KEY is not set. Set it in your environment before "
                    "using the prompt interpreter."
                )
            genai.configure(api_key=self.settings.gemini_api_key)
            self._model = genai.GenerativeModel(
                self.settings.gemini_model,
                system_instruction=SYSTEM_INSTRUCTION,
            )
        return self._model

    def _complete_json(self, prompt: str) -> Any:
        model = self._get_model()
        logger.debug("Calling Gemini %s (%d chars)", self.settings.gemini_model, len(prompt))
        try:
            resp = model.generate_content(prompt, generation_config=GENERATION_CONFIG)
        except Exception as exc:  # noqa: BLE001 - SDK raises many types
            logger.error("Gemini Agent Error: %s", exc)
            raise InterpretationError(f"Gemini request failed: {exc}") from exc
        return _parse_gemini_json(resp)

    async def interpret(
        self,
        prompt: str,
        constraints: str = "",
        previous: Optional[Scene] = None,
    ) -> Scene:
        """Write a new Scene, or refine `previous` when it is given."""
        data = await asyncio.to_thread(
            self._complete_json, _build_prompt(prompt, constraints, previous)
        )
        if not isinstance(data, dict):
            raise InterpretationError(f"Gemini returned {type(data).__name__}, expected an object")
        return normalize_scene(data)

    async def interpret_batch(self, prompt: str, count: int, constraints: str = "") -> List[Scene]:
        data = await asyncio.to_thread(
            self._complete_json, _build_batch_prompt(prompt, count, constraints)
        )
        raw = data.get("variations") if isinstance(data, dict) else data
        if not isinstance(raw, list):
            raw = []
        scenes = [normalize_scene(item) for item in raw if isinstance(item, dict)]
        return fit_variations(scenes, count)
