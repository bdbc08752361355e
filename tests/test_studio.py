"""
Tests for the studio session flow (app/services/studio.py)
"""

import pytest

from app.services.batch import BatchScheduler
from app.services.errors import BatchEmptyError, InterpretationError
from app.services.studio import StudioSession
from fibo.normalizer import normalize_scene
from fibo.presets import ProControls
from fibo.schema import GenerationResult, GenerationSource, Provenance


class FakeInterpreter:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def interpret(self, prompt, constraints="", previous=None):
        self.calls.append(("single", prompt, constraints, previous))
        if self.error:
            raise self.error
        return normalize_scene({"short_description": f"scene for {prompt}"})

    async def interpret_batch(self, prompt, count, constraints=""):
        self.calls.append(("batch", prompt, constraints, count))
        if self.error:
            raise self.error
        return [normalize_scene({"short_description": f"{prompt} #{i}"}) for i in range(count)]


class EchoOrchestrator:
    def __init__(self):
        self.rendered = []

    async def generate(self, scene):
        self.rendered.append(scene.short_description)
        return GenerationResult(url="https://x/img.png", seed=3, source=GenerationSource.FALLBACK)


@pytest.fixture
def orchestrator():
    return EchoOrchestrator()


@pytest.fixture
def session(orchestrator):
    return StudioSession(FakeInterpreter(), BatchScheduler(orchestrator, stagger=0.0), batch_size=4)


@pytest.mark.asyncio
async def test_fresh_generation(session, orchestrator):
    rnd = await session.generate("a teapot", controls=ProControls(lens="85mm"), workflow_id="gaming")
    await rnd.wait()

    kind, prompt, constraints, previous = session.interpreter.calls[0]
    assert (kind, prompt, previous) == ("single", "a teapot", None)
    assert "Camera Lens must be 85mm" in constraints
    assert "Workflow context: Gaming Asset" in constraints
    assert [s.short_description for s in session.scenes] == ["scene for a teapot"]
    assert [i.provenance for i in session.history.items()] == [Provenance.GENERATION]
    assert session.results[0].source is GenerationSource.FALLBACK
    assert orchestrator.rendered == ["scene for a teapot"]


@pytest.mark.asyncio
async def test_refinement_passes_current_scene(session):
    await (await session.generate("a teapot")).wait()
    current = session.current_scene

    await (await session.generate("make it blue")).wait()

    assert session.interpreter.calls[1][3] == current
    assert len(session.history) == 2


@pytest.mark.asyncio
async def test_rerender_of_manual_edit(session, orchestrator):
    session.update_scene({"short_description": "hand edited"})

    await (await session.generate("")).wait()

    assert session.interpreter.calls == []
    assert orchestrator.rendered == ["hand edited"]
    items = session.history.items()
    assert items[-1].provenance is Provenance.MANUAL
    assert items[-1].scene.short_description == "hand edited"


@pytest.mark.asyncio
async def test_batch_mode_renders_all_variants(session, orchestrator):
    rnd = await session.generate("sneaker", batch_mode=True)
    slots = await rnd.wait()

    assert len(session.scenes) == 4
    assert len(slots) == 4 and all(s.ok for s in slots)
    assert sorted(orchestrator.rendered) == [f"sneaker #{i}" for i in range(4)]
    assert [(i.provenance, i.scene.short_description) for i in session.history.items()] == [
        (Provenance.BATCH, "sneaker #0")
    ]


@pytest.mark.asyncio
async def test_batch_mode_ignores_current_scene(session):
    session.load_blueprint("sneaker-float")

    await (await session.generate("shoes", batch_mode=True)).wait()

    assert session.interpreter.calls[0][0] == "batch"


@pytest.mark.asyncio
async def test_nothing_to_generate(session):
    with pytest.raises(ValueError):
        await session.generate("   ")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [InterpretationError("gemini down"), BatchEmptyError("zero")])
async def test_interpretation_failure_keeps_session_usable(orchestrator, error):
    session = StudioSession(FakeInterpreter(error=error), BatchScheduler(orchestrator, stagger=0.0))

    with pytest.raises(InterpretationError):
        await session.generate("x", batch_mode=isinstance(error, BatchEmptyError))

    assert session.last_error == str(error)
    assert len(session.history) == 0
    session.dismiss_error()
    assert session.last_error is None


def test_library_load_and_restore(session):
    loaded = session.load_blueprint("cyberpunk-street")
    assert loaded.aspect_ratio.value == "16:9"
    item = session.history.items()[0]
    assert item.provenance is Provenance.LIBRARY

    session.update_scene({"short_description": "changed"})
    restored = session.restore(item.id)

    assert restored.short_description == loaded.short_description
    assert len(session.history) == 1


def test_select_out_of_range(session):
    session.update_scene({})
    with pytest.raises(IndexError):
        session.select(3)


def test_snapshot_shape(session):
    session.load_blueprint("eco-cosmetic")

    snap = session.snapshot()

    assert snap["selected_index"] == 0
    assert snap["results"] == []
    assert snap["scenes"][0]["context"] == "Beauty advertisement"


@pytest.mark.asyncio
async def test_reset_clears_scenes_and_results(session):
    await (await session.generate("a teapot")).wait()

    session.reset()

    assert session.scenes == []
    assert session.results == []
    assert not session.is_rendering
    assert len(session.history) == 1


def test_zero_batch_size_is_rejected(orchestrator):
    with pytest.raises(ValueError):
        StudioSession(FakeInterpreter(), BatchScheduler(orchestrator), batch_size=0)


@pytest.mark.asyncio
async def test_failed_fresh_generation_clears_previous_canvas(orchestrator):
    session = StudioSession(FakeInterpreter(), BatchScheduler(orchestrator, stagger=0.0))
    await (await session.generate("a teapot")).wait()
    session.interpreter.error = InterpretationError("gemini down")

    with pytest.raises(InterpretationError):
        await session.generate("kettles", batch_mode=True)

    assert session.scenes == []
    assert session.results == []
    assert session.last_error == "gemini down"
    assert len(session.history) == 1


@pytest.mark.asyncio
async def test_failed_refinement_keeps_current_scene(orchestrator):
    session = StudioSession(FakeInterpreter(), BatchScheduler(orchestrator, stagger=0.0))
    await (await session.generate("a teapot")).wait()
    session.interpreter.error = InterpretationError("gemini down")

    with pytest.raises(InterpretationError):
        await session.generate("make it blue")

    assert [s.short_description for s in session.scenes] == ["scene for a teapot"]
    assert session.results[0].ok
