"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

from typing import Any, Dict

import pytest

from app.config import StudioSettings


@pytest.fixture
def settings() -> StudioSettings:
    """Settings with test credentials and short deadlines."""
    return StudioSettings(
        bria_api_token="primary-token",
        bria_mcp_api_token="mcp-token",
        bria_base_url="https://bria.test/v2",
        bria_mcp_url="https://mcp.test/mcp",
        bria_sync=False,
        submit_timeout=1.0,
        fallback_timeout=1.0,
        poll_timeout=0.5,
        poll_overall_timeout=2.0,
        poll_interval=0.01,
        batch_stagger=0.05,
        batch_size=4,
        gemini_api_key="gemini-test-key",
    )


@pytest.fixture
def scene_data() -> Dict[str, Any]:
    """A complete scene document, as Gemini would return it."""
    return {
        "short_description": "A red vintage bicycle leaning against a brick wall",
        "objects": [
            {
                "description": "Red vintage bicycle",
                "location": "Center",
                "texture": "Glossy paint",
            }
        ],
        "background_setting": "Weathered brick wall in a quiet alley",
        "lighting": {
            "conditions": "Golden hour",
            "direction": "Side",
            "shadows": "Long and soft",
        },
        "aesthetics": {
            "composition": "Rule of thirds",
            "color_scheme": "Warm reds and oranges",
            "mood_atmosphere": "Nostalgic",
        },
        "photographic_characteristics": {
            "depth_of_field": "Shallow",
            "focus": "Sharp on the bicycle",
            "camera_angle": "Eye level",
            "lens_focal_length": "50mm",
        },
        "style_medium": "photograph",
        "context": "Editorial",
        "artistic_style": "realistic",
        "aspect_ratio": "16:9",
    }
