from typing import Any, Dict, List, Optional
from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from app.config import StudioSettings
from app.services.batch import BatchScheduler
from app.services.bria_client import BriaClient
from app.services.errors import (
    BriaConfigError,
    GenerationError,
    InterpretationError,
)
from app.services.history import HistoryStore
from app.services.mcp_client import BriaMCPClient
from app.services.orchestrator import GenerationOrchestrator
from app.services.studio import StudioSession
from fibo.normalizer import normalize_scene
from fibo.presets import WORKFLOWS, ProControls, library_summaries
from gemini.interpreter import SceneInterpreter

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------
# FastAPI app + session singleton
# -------------------------------------------------------------------------

_session: Optional[StudioSession] = None
_http_client: Optional[httpx.AsyncClient] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the shared Bria HTTP client on shutdown."""
    yield
    await close_session()


app = FastAPI(title="FIBO Studio API", lifespan=lifespan)


def build_session(
    settings: Optional[StudioSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> StudioSession:
    """Wire interpreter -> orchestrator (REST v2 + MCP fallback) -> scheduler."""
    settings = settings or StudioSettings.from_env()
    client = client or httpx.AsyncClient()

    primary = BriaClient(settings=settings, client=client)
    fallback = None
    if settings.bria_mcp_api_token:
        fallback = BriaMCPClient(settings=settings, client=client)
    else:
        logger.warning("BRIA_MCP_API_TOKEN not set; MCP fallback disabled")

    orchestrator = GenerationOrchestrator(primary, fallback)
    scheduler = BatchScheduler(orchestrator, stagger=settings.batch_stagger)
    return StudioSession(
        SceneInterpreter(settings=settings),
        scheduler,
        HistoryStore(),
        batch_size=settings.batch_size,
    )


async def get_session() -> StudioSession:
    # async so it runs on the event loop: no await between check and assignment
    global _session, _http_client
    if _session is None:
        client = httpx.AsyncClient()
        try:
            _session = build_session(client=client)
        except BriaConfigError as e:
            await client.aclose()
            raise HTTPException(status_code=500, detail=str(e))
        _http_client = client
    return _session


async def close_session() -> None:
    global _session, _http_client
    if _http_client is not None:
        await _http_client.aclose()
    _http_client = None
    _session = None


# -------------------------------------------------------------------------
# Pydantic models
# -------------------------------------------------------------------------


class GenerateRequest(BaseModel):
    """
    Empty prompt + existing scenes = re-render of the (edited) JSON.
    Prompt + existing scene (no batch) = refinement of the selected scene.
    """

    prompt: str = ""
    batch_mode: bool = False
    workflow_id: Optional[str] = None
    controls: Optional[ProControls] = None


class RenderRequest(BaseModel):
    scene: Dict[str, Any]


class SceneUpdateRequest(BaseModel):
    scene: Dict[str, Any]


class RenderResponse(BaseModel):
    url: str
    seed: int
    source: str
    label: str


# -------------------------------------------------------------------------
# Health check + static data
# -------------------------------------------------------------------------


@app.get("/health")
def health() -> Dict[str, str]:
    """Simple health check for monitoring / liveness probes."""

    return {"status": "ok"}


@app.get("/workflows")
def workflows() -> Dict[str, Any]:
    return {"workflows": [{"id": wf_id, **wf} for wf_id, wf in WORKFLOWS.items()]}


@app.get("/library")
def library() -> Dict[str, Any]:
    return {"blueprints": library_summaries()}


# -------------------------------------------------------------------------
# Studio flow
# -------------------------------------------------------------------------


@app.get("/state")
def state(session: StudioSession = Depends(get_session)) -> Dict[str, Any]:
    """Current scenes, selected variant and per-slot results of the active round."""

    return session.snapshot()


@app.post("/generate")
async def generate(
    req: GenerateRequest,
    session: StudioSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Interpret (or re-use) the blueprint(s) and start a render round.

    Returns immediately; poll GET /state for slot results.
    """
    try:
        await session.generate(
            req.prompt,
            batch_mode=req.batch_mode,
            controls=req.controls,
            workflow_id=req.workflow_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InterpretationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return session.snapshot()


@app.post("/render", response_model=RenderResponse)
async def render(
    req: RenderRequest,
    session: StudioSession = Depends(get_session),
) -> RenderResponse:
    """Single-shot generation of one scene, waiting for the image."""

    scene = normalize_scene(req.scene)
    try:
        result = await session.scheduler.orchestrator.generate(scene)
    except GenerationError as e:
        # Bubble up as 502 because it's an upstream service error (Bria API)
        raise HTTPException(status_code=502, detail=str(e))

    return RenderResponse(
        url=result.url,
        seed=result.seed,
        source=result.source.value,
        label=result.label,
    )


@app.put("/scene")
def update_scene(
    req: SceneUpdateRequest,
    session: StudioSession = Depends(get_session),
) -> Dict[str, Any]:
    session.update_scene(req.scene)
    return session.snapshot()


@app.post("/select/{index}")
def select(index: int, session: StudioSession = Depends(get_session)) -> Dict[str, Any]:
    try:
        session.select(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return session.snapshot()


@app.post("/library/{blueprint_id}/load")
def load_library_blueprint(
    blueprint_id: str,
    session: StudioSession = Depends(get_session),
) -> Dict[str, Any]:
    try:
        session.load_blueprint(blueprint_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown blueprint: {blueprint_id}")
    return session.snapshot()


@app.post("/reset")
def reset(session: StudioSession = Depends(get_session)) -> Dict[str, Any]:
    session.reset()
    return session.snapshot()


@app.post("/error/dismiss")
def dismiss_error(session: StudioSession = Depends(get_session)) -> Dict[str, Any]:
    session.dismiss_error()
    return session.snapshot()


# -------------------------------------------------------------------------
# Version history
# -------------------------------------------------------------------------


@app.get("/history")
def history(session: StudioSession = Depends(get_session)) -> Dict[str, List[Dict[str, Any]]]:
    return {"items": [item.model_dump(mode="json") for item in session.history.items()]}


@app.post("/history/{item_id}/restore")
def restore_history(
    item_id: str,
    session: StudioSession = Depends(get_session),
) -> Dict[str, Any]:
    try:
        session.restore(item_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown history item: {item_id}")
    return session.snapshot()
