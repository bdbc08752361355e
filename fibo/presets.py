"""Static studio data: workflow presets, pro camera controls, blueprint library.

Pro controls are not applied to the JSON directly. They are turned into a
constraint string that the interpreter agent must honour when it writes the
structured prompt.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .normalizer import normalize_scene
from .schema import Scene


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------

WORKFLOWS: Dict[str, Dict[str, str]] = {
    "ecommerce": {
        "name": "E-Commerce Studio",
        "description": "Clean background, perfect product lighting",
        "base_prompt": "Create a high-end product shot on a clean background.",
    },
    "gaming": {
        "name": "Gaming Asset",
        "description": "Dynamic poses, cinematic lighting",
        "base_prompt": "Create a fantasy game character concept art.",
    },
    "ads": {
        "name": "Ad Campaign",
        "description": "Lifestyle context, vibrant colors",
        "base_prompt": "Create a lifestyle advertisement scene.",
    },
}

DEFAULT_WORKFLOW_ID = "ecommerce"


def get_workflow(workflow_id: Optional[str]) -> Dict[str, str]:
    """Unknown ids fall back to the first workflow, like the studio sidebar."""
    return WORKFLOWS.get(workflow_id or "", WORKFLOWS[DEFAULT_WORKFLOW_ID])


# ---------------------------------------------------------------------------
# Pro controls -> interpreter constraints
# ---------------------------------------------------------------------------

DEFAULT_OPTION = "Default"

LENS_OPTIONS = ("16mm", "35mm", "50mm", "85mm")
ANGLE_OPTIONS = ("Low Angle", "Eye Level", "High Angle")
LIGHTING_OPTIONS = ("Cinematic", "Natural", "Studio")


class ProControls(BaseModel):
    """Visual director toggles plus the lens / angle / lighting pickers."""

    hdr: bool = True
    bit_depth_16: bool = True
    lens: str = DEFAULT_OPTION
    angle: str = DEFAULT_OPTION
    lighting: str = DEFAULT_OPTION


def build_constraints(controls: Optional[ProControls], workflow_id: Optional[str] = None) -> str:
    """
    Flatten pro controls into the constraint sentence sent to the interpreter.

    Example:
      ProControls(hdr=False, bit_depth_16=False, lens="85mm"), "gaming"
      -> "STRICT CONSTRAINT: Camera Lens must be 85mm. Workflow context: Gaming Asset"
    """
    controls = controls or ProControls()
    parts: List[str] = []

    if controls.hdr:
        parts.append("Ensure lighting settings support High Dynamic Range (HDR) look.")
    if controls.bit_depth_16:
        parts.append("Color palette should be rich and support 16-bit depth feel.")
    if controls.lens != DEFAULT_OPTION:
        parts.append(f"STRICT CONSTRAINT: Camera Lens must be {controls.lens}.")
    if controls.angle != DEFAULT_OPTION:
        parts.append(f"STRICT CONSTRAINT: Camera Angle must be {controls.angle}.")
    if controls.lighting != DEFAULT_OPTION:
        parts.append(f"STRICT CONSTRAINT: Lighting Style must be {controls.lighting}.")

    parts.append(f"Workflow context: {get_workflow(workflow_id)['name']}")
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Blueprint library
# ---------------------------------------------------------------------------

BLUEPRINT_LIBRARY: Dict[str, Dict[str, Any]] = {
    "eco-cosmetic": {
        "category": "E-Commerce",
        "title": "Minimalist Cosmetic Bottle",
        "description": "High-end skincare product on natural stone with soft dappled sunlight.",
        "tags": ["product", "skincare", "natural", "luxury"],
        "scene": {
            "short_description": (
                "A luxury skincare serum bottle sitting on a beige travertine stone. "
                "Soft dappled sunlight creates organic shadows."
            ),
            "objects": [
                {
                    "description": "Glass serum bottle with gold dropper",
                    "location": "Center",
                    "shape_and_color": "Cylindrical amber glass",
                }
            ],
            "background_setting": "Beige travertine stone surface with a blurred natural background",
            "lighting": {
                "conditions": "Natural sunlight with gobos",
                "direction": "Side",
                "shadows": "Dappled foliage",
            },
            "aesthetics": {
                "composition": "Rule of thirds",
                "color_scheme": "Warm neutrals",
                "mood_atmosphere": "Serene and organic",
            },
            "photographic_characteristics": {
                "depth_of_field": "Shallow",
                "focus": "Sharp on label",
                "camera_angle": "Slightly high angle",
                "lens_focal_length": "85mm",
            },
            "style_medium": "photograph",
            "context": "Beauty advertisement",
            "artistic_style": "realistic",
            "aspect_ratio": "1:1",
        },
    },
    "cyberpunk-street": {
        "category": "Gaming",
        "title": "Cyberpunk Street Samurai",
        "description": "Neon-lit futuristic warrior in a rain-slicked alleyway.",
        "tags": ["scifi", "character", "neon", "dark"],
        "scene": {
            "short_description": "A cybernetic street samurai standing in a rainy neon-lit alleyway at night.",
            "objects": [
                {
                    "description": "Cybernetic warrior holding a glowing katana",
                    "location": "Center",
                    "appearance_details": "Chrome plating, LED accents",
                }
            ],
            "background_setting": "Futuristic city alleyway with neon signs reflecting in puddles",
            "lighting": {
                "conditions": "Neon city lights",
                "direction": "Backlit and rim lighting",
                "shadows": "High contrast",
            },
            "aesthetics": {
                "composition": "Centered heroic",
                "color_scheme": "Cyberpunk Cyan and Magenta",
                "mood_atmosphere": "Gritty and intense",
            },
            "photographic_characteristics": {
                "depth_of_field": "Cinematic",
                "focus": "Sharp on character",
                "camera_angle": "Low angle",
                "lens_focal_length": "35mm",
            },
            "style_medium": "digital_art",
            "context": "Video game concept art",
            "artistic_style": "realistic",
            "aspect_ratio": "16:9",
        },
    },
    "sneaker-float": {
        "category": "E-Commerce",
        "title": "Levitating Sneaker",
        "description": "Dynamic floating sneaker shot with exploded elements.",
        "tags": ["shoe", "sport", "dynamic", "tech"],
        "scene": {
            "short_description": (
                "A high-tech running shoe levitating in mid-air with deconstructed "
                "elements floating around it."
            ),
            "objects": [
                {
                    "description": "Neon green and black running shoe",
                    "location": "Floating center",
                    "orientation": "Dynamic tilt",
                }
            ],
            "background_setting": "Abstract gradient studio background",
            "lighting": {
                "conditions": "Studio high-key",
                "direction": "Multi-point",
                "shadows": "Minimal",
            },
            "aesthetics": {
                "composition": "Dynamic diagonal",
                "color_scheme": "Vibrant neon",
                "mood_atmosphere": "Energetic",
            },
            "photographic_characteristics": {
                "depth_of_field": "Deep",
                "focus": "Sharp throughout",
                "camera_angle": "Eye level",
                "lens_focal_length": "50mm",
            },
            "style_medium": "photograph",
            "context": "Sportswear advertisement",
            "artistic_style": "realistic",
            "aspect_ratio": "1:1",
        },
    },
    "arch-modern": {
        "category": "Architecture",
        "title": "Modern Concrete Villa",
        "description": "Minimalist concrete architecture at blue hour.",
        "tags": ["house", "exterior", "modern", "dusk"],
        "scene": {
            "short_description": (
                "Exterior of a modern concrete villa at dusk (blue hour) with warm "
                "interior lights glowing."
            ),
            "objects": [
                {
                    "description": "Modern concrete house structure",
                    "location": "Mid-ground",
                    "appearance_details": "Clean lines, glass windows",
                }
            ],
            "background_setting": "Manicured lawn and twilight sky",
            "lighting": {
                "conditions": "Blue hour twilight",
                "direction": "Ambient",
                "shadows": "Soft",
            },
            "aesthetics": {
                "composition": "Wide symmetrical",
                "color_scheme": "Cool blue and warm orange",
                "mood_atmosphere": "Luxurious and calm",
            },
            "photographic_characteristics": {
                "depth_of_field": "Deep",
                "focus": "Sharp",
                "camera_angle": "Eye level",
                "lens_focal_length": "24mm",
            },
            "style_medium": "photograph",
            "context": "Architectural visualization",
            "artistic_style": "realistic",
            "aspect_ratio": "16:9",
        },
    },
}


def load_blueprint(blueprint_id: str) -> Scene:
    """Return a fresh Scene for a library entry. Raises KeyError if unknown."""
    return normalize_scene(BLUEPRINT_LIBRARY[blueprint_id]["scene"])


def library_summaries() -> List[Dict[str, Any]]:
    return [
        {
            "id": blueprint_id,
            "category": entry["category"],
            "title": entry["title"],
            "description": entry["description"],
            "tags": list(entry["tags"]),
        }
        for blueprint_id, entry in BLUEPRINT_LIBRARY.items()
    ]
