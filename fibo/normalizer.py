# fibo/normalizer.py

"""
Repair a loosely-typed scene document into a strict FIBO StructuredPrompt.

Scenes reach the generator from several places (Gemini output, manual JSON
edits in the studio, library blueprints, restored history entries) and any of
them may be missing keys. Bria v2 answers an incomplete structured prompt with
a 422 ("objects -> Field required"), so every scene goes through
`normalize_scene` before it is sent.

This module is:
- Pure / side-effect free
- Total: it never raises, every missing or blank field gets a default

Defaults:

  short_description             "High quality professional image"
  objects                       []   (object without description -> "Object")
  background_setting            "Studio background"
  lighting                      Studio lighting / Front / Soft
  aesthetics                    Centered / Natural / Professional
  photographic_characteristics  Standard / Sharp / Eye level / 50mm
  style_medium                  "photograph"
  context                       "Professional visual production"
  artistic_style                "realistic"
  text_render                   []
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from .schema import (
    Aesthetics,
    AspectRatio,
    Lighting,
    PhotographicCharacteristics,
    Scene,
    SceneObject,
    StyleMedium,
)

DEFAULT_SHORT_DESCRIPTION = "High quality professional image"
DEFAULT_BACKGROUND = "Studio background"
DEFAULT_OBJECT_DESCRIPTION = "Object"
DEFAULT_CONTEXT = "Professional visual production"
DEFAULT_ARTISTIC_STYLE = "realistic"
DEFAULT_ASPECT_RATIO = AspectRatio.SQUARE

DEFAULT_LIGHTING: Dict[str, str] = {
    "conditions": "Studio lighting",
    "direction": "Front",
    "shadows": "Soft",
}

DEFAULT_AESTHETICS: Dict[str, str] = {
    "composition": "Centered",
    "color_scheme": "Natural",
    "mood_atmosphere": "Professional",
}

DEFAULT_PHOTOGRAPHIC: Dict[str, str] = {
    "depth_of_field": "Standard",
    "focus": "Sharp",
    "camera_angle": "Eye level",
    "lens_focal_length": "50mm",
}

_OBJECT_TEXT_FIELDS = (
    "location",
    "relationship",
    "relative_size",
    "shape_and_color",
    "texture",
    "appearance_details",
    "orientation",
)


def _text(value: Any, default: str) -> str:
    """Return `value` as a stripped string, or `default` if blank/absent."""
    if value is None or isinstance(value, (dict, list)):
        return default
    text = str(value).strip()
    return text or default


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _block(src: Any, defaults: Dict[str, str]) -> Dict[str, str]:
    """Fill a fixed-key block (lighting, aesthetics, ...) key by key."""
    data = _as_mapping(src)
    return {key: _text(data.get(key), default) for key, default in defaults.items()}


def _count(value: Any) -> Optional[int]:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def _build_object(raw: Any) -> SceneObject:
    if isinstance(raw, str):
        return SceneObject(description=_text(raw, DEFAULT_OBJECT_DESCRIPTION))

    data = _as_mapping(raw)
    fields: Dict[str, Any] = {
        "description": _text(data.get("description"), DEFAULT_OBJECT_DESCRIPTION),
        "number_of_objects": _count(data.get("number_of_objects")),
    }
    for key in _OBJECT_TEXT_FIELDS:
        value = data.get(key)
        if value is not None and not isinstance(value, (dict, list)) and str(value).strip():
            fields[key] = str(value).strip()
    return SceneObject(**fields)


def _build_objects(raw: Any) -> List[SceneObject]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [_build_object(item) for item in raw]


def _style_medium(value: Any) -> StyleMedium:
    if isinstance(value, StyleMedium):
        return value
    key = _text(value, StyleMedium.PHOTOGRAPH.value).lower().replace(" ", "_")
    try:
        return StyleMedium(key)
    except ValueError:
        return StyleMedium.PHOTOGRAPH


def _aspect_ratio(value: Any) -> Optional[AspectRatio]:
    if value is None:
        return None
    if isinstance(value, AspectRatio):
        return value
    try:
        return AspectRatio(str(value).strip())
    except ValueError:
        return None


def normalize_scene(scene: Union[Scene, Mapping[str, Any], None]) -> Scene:
    """
    Return a transport-ready Scene for any partial scene document.

    Accepts a Scene (re-validated field by field, so blank strings are still
    repaired), a plain dict, or None.
    """
    if isinstance(scene, Scene):
        data: Mapping[str, Any] = scene.model_dump(mode="json")
    else:
        data = _as_mapping(scene)

    text_render = data.get("text_render")

    return Scene(
        short_description=_text(data.get("short_description"), DEFAULT_SHORT_DESCRIPTION),
        objects=_build_objects(data.get("objects")),
        background_setting=_text(data.get("background_setting"), DEFAULT_BACKGROUND),
        lighting=Lighting(**_block(data.get("lighting"), DEFAULT_LIGHTING)),
        aesthetics=Aesthetics(**_block(data.get("aesthetics"), DEFAULT_AESTHETICS)),
        photographic_characteristics=PhotographicCharacteristics(
            **_block(data.get("photographic_characteristics"), DEFAULT_PHOTOGRAPHIC)
        ),
        style_medium=_style_medium(data.get("style_medium")),
        context=_text(data.get("context"), DEFAULT_CONTEXT),
        artistic_style=_text(data.get("artistic_style"), DEFAULT_ARTISTIC_STYLE),
        aspect_ratio=_aspect_ratio(data.get("aspect_ratio")),
        text_render=list(text_render) if isinstance(text_render, (list, tuple)) else [],
    )


def structured_prompt(scene: Scene) -> Dict[str, Any]:
    """
    The StructuredPrompt dict Bria expects.

    `aspect_ratio` is dropped here; it is a request-level field, not part of
    the prompt schema.
    """
    payload = scene.to_json_dict()
    payload.pop("aspect_ratio", None)
    payload["text_render"] = list(scene.text_render)
    return payload


def transport_aspect_ratio(scene: Scene) -> str:
    return (scene.aspect_ratio or DEFAULT_ASPECT_RATIO).value
