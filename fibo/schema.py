# fibo/schema.py

"""
Pydantic models for the FIBO StructuredPrompt and the studio's generation
records.

Target schema (from Bria/FIBO docs):

  StructuredPrompt {
    short_description: string
    objects: list<PromptObject>
    background_setting: string
    lighting: { conditions, direction, shadows }
    aesthetics: { composition, color_scheme, mood_atmosphere }
    photographic_characteristics: {
      depth_of_field, focus, camera_angle, lens_focal_length
    }
    style_medium: string
    text_render: list
    context: string
    artistic_style: string
  }

`aspect_ratio` is not part of the structured prompt itself; it rides along
with the scene and is sent as a sibling field of the generate request.

All scene models are frozen: an edit is a new value (`model_copy(update=...)`)
so a scene handed to an in-flight request can never change underneath it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StyleMedium(str, Enum):
    PHOTOGRAPH = "photograph"
    DIGITAL_ART = "digital_art"
    RENDER_3D = "3d_render"
    OIL_PAINTING = "oil_painting"


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    WIDESCREEN = "16:9"
    PORTRAIT = "9:16"
    CLASSIC = "4:3"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=False)


class SceneObject(_Frozen):
    description: str
    location: Optional[str] = None
    relationship: Optional[str] = None
    relative_size: Optional[str] = None
    shape_and_color: Optional[str] = None
    texture: Optional[str] = None
    appearance_details: Optional[str] = None
    number_of_objects: Optional[int] = None
    orientation: Optional[str] = None


class Lighting(_Frozen):
    conditions: str
    direction: str
    shadows: str


class Aesthetics(_Frozen):
    composition: str
    color_scheme: str
    mood_atmosphere: str


class PhotographicCharacteristics(_Frozen):
    depth_of_field: str
    focus: str
    camera_angle: str
    lens_focal_length: str


class Scene(_Frozen):
    """The canonical blueprint consumed by the image backend."""

    short_description: str
    objects: List[SceneObject] = Field(default_factory=list)
    background_setting: str
    lighting: Lighting
    aesthetics: Aesthetics
    photographic_characteristics: PhotographicCharacteristics
    style_medium: StyleMedium = StyleMedium.PHOTOGRAPH
    context: str
    artistic_style: str
    aspect_ratio: Optional[AspectRatio] = None
    text_render: List[Any] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        """Plain JSON-ready dict (enum values, no None fields)."""
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Generation results
# ---------------------------------------------------------------------------


class GenerationSource(str, Enum):
    """Which strategy produced an image. The wire values match the UI labels."""

    PRIMARY_SYNC = "REST_V2"
    PRIMARY_ASYNC = "REST_V2_ASYNC"
    FALLBACK = "MCP"
    ERROR = "ERROR"


SOURCE_LABELS = {
    GenerationSource.PRIMARY_SYNC: "Bria API v2",
    GenerationSource.PRIMARY_ASYNC: "Bria API v2 (async)",
    GenerationSource.FALLBACK: "Bria MCP",
    GenerationSource.ERROR: "Failed",
}


class GenerationResult(_Frozen):
    """
    One delivered image or a typed failure.

    The `source` tag is the only success/failure signal: an Error result always
    has an empty url and seed 0, and any other source must carry a url.
    """

    url: str
    seed: int
    source: GenerationSource
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "GenerationResult":
        if self.source is GenerationSource.ERROR:
            if self.url or self.seed != 0:
                raise ValueError("error results must have an empty url and seed 0")
        elif not self.url:
            raise ValueError(f"{self.source.value} result is missing its image url")
        return self

    @classmethod
    def failed(cls, reason: Optional[str] = None) -> "GenerationResult":
        return cls(url="", seed=0, source=GenerationSource.ERROR, error=reason)

    @property
    def ok(self) -> bool:
        return self.source is not GenerationSource.ERROR

    @property
    def label(self) -> str:
        return SOURCE_LABELS.get(self.source, "Unknown")


# ---------------------------------------------------------------------------
# Version history
# ---------------------------------------------------------------------------


class Provenance(str, Enum):
    GENERATION = "Generation"
    MANUAL = "Manual"
    LIBRARY = "Library"
    BATCH = "Batch"


class HistoryItem(_Frozen):
    id: str
    timestamp: int  # epoch milliseconds
    scene: Scene
    provenance: Provenance
    summary: Optional[str] = None
