"""
Tests for the Gemini prompt interpreter (gemini/interpreter.py)
"""

import json
from types import SimpleNamespace

import pytest

from app.services.errors import BatchEmptyError, InterpretationError
from fibo.normalizer import normalize_scene
from gemini.interpreter import SceneInterpreter, fit_variations


class DummyModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, payload=None, text=None, error=None):
        self.text = text if text is not None else json.dumps(payload)
        self.error = error
        self.prompts = []

    def generate_content(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        self.generation_config = generation_config
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def scenes(*names):
    return [normalize_scene({"short_description": n}) for n in names]


class TestFitVariations:
    def test_pads_by_cloning_round_robin(self):
        fitted = fit_variations(scenes("A", "B"), 4)

        assert [s.short_description for s in fitted] == [
            "A",
            "B",
            "A (Variant 3)",
            "B (Variant 4)",
        ]
        assert fitted[2].lighting == fitted[0].lighting

    def test_truncates_extra_items(self):
        fitted = fit_variations(scenes("1", "2", "3", "4", "5", "6"), 4)

        assert [s.short_description for s in fitted] == ["1", "2", "3", "4"]

    def test_single_item_is_cloned(self):
        fitted = fit_variations(scenes("solo"), 3)

        assert [s.short_description for s in fitted] == [
            "solo",
            "solo (Variant 2)",
            "solo (Variant 3)",
        ]

    def test_zero_items_is_batch_empty(self):
        with pytest.raises(BatchEmptyError):
            fit_variations([], 4)

    def test_clones_are_independent(self):
        fitted = fit_variations(scenes("A"), 2)
        fitted[1].objects.append(normalize_scene({"objects": ["x"]}).objects[0])

        assert fitted[0].objects == []


@pytest.mark.asyncio
async def test_interpret_returns_normalized_scene(settings, scene_data):
    partial = dict(scene_data)
    del partial["context"]
    model = DummyModel(partial)
    interpreter = SceneInterpreter(model, settings=settings)

    scene = await interpreter.interpret("a red bike", "STRICT CONSTRAINT: Camera Lens must be 85mm.")

    assert scene.short_description == scene_data["short_description"]
    assert scene.context == "Professional visual production"
    assert "a red bike" in model.prompts[0]
    assert "[VISUAL DIRECTOR CONSTRAINTS]: STRICT CONSTRAINT" in model.prompts[0]
    assert model.generation_config["response_mime_type"] == "application/json"


@pytest.mark.asyncio
async def test_refinement_embeds_previous_json(settings, scene_data):
    previous = normalize_scene(scene_data)
    model = DummyModel(scene_data)

    await SceneInterpreter(model, settings=settings).interpret("make it night", previous=previous)

    prompt = model.prompts[0]
    assert "CURRENT STRUCTURED PROMPT" in prompt
    assert "Golden hour" in prompt
    assert '"make it night"' in prompt


@pytest.mark.asyncio
async def test_interpret_batch_pads_to_count(settings):
    model = DummyModel({"variations": [{"short_description": "low angle"}, {"short_description": "high angle"}]})

    result = await SceneInterpreter(model, settings=settings).interpret_batch("sneaker", 4)

    assert [s.short_description for s in result] == [
        "low angle",
        "high angle",
        "low angle (Variant 3)",
        "high angle (Variant 4)",
    ]
    assert "EXACTLY 4" in model.prompts[0]


@pytest.mark.asyncio
async def test_interpret_batch_with_no_variations_fails(settings):
    model = DummyModel({"variations": "oops"})

    with pytest.raises(BatchEmptyError):
        await SceneInterpreter(model, settings=settings).interpret_batch("sneaker", 4)


@pytest.mark.asyncio
async def test_json_wrapped_in_markdown_is_recovered(settings):
    model = DummyModel(text='```json\n{"short_description": "fenced"}\n```')

    scene = await SceneInterpreter(model, settings=settings).interpret("x")

    assert scene.short_description == "fenced"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "model",
    [
        DummyModel(text=""),
        DummyModel(text="I cannot help with that."),
        DummyModel(payload=["not", "an", "object"]),
        DummyModel(payload={}, error=RuntimeError("quota exhausted")),
    ],
)
async def test_interpreter_failures_are_interpretation_errors(settings, model):
    with pytest.raises(InterpretationError):
        await SceneInterpreter(model, settings=settings).interpret("x")


@pytest.mark.asyncio
async def test_missing_api_key_is_an_interpretation_error(settings):
    interpreter = SceneInterpreter(settings=settings.model_copy(update={"gemini_api_key": None}))

    with pytest.raises(InterpretationError, match="GEMINI_API_KEY"):
        await interpreter.interpret("x")
