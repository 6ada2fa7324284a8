"""Named biome presets.

Presets are plain dictionaries in the same shape as ``BiomeConfig``. A
request may name a preset and override any part of it; explicit values
always win over preset values.
"""

import copy
import logging
from typing import Any

from pydantic.alias_generators import to_snake

from .config import BiomeConfig

logger = logging.getLogger(__name__)

# Normalized heights above the waterline
SHORE_HEIGHT = 0.1

BEACH: dict[str, Any] = {
    "name": "Beach",
    "noise": {
        "min": -0.05,
        "max": 0.05,
        "octaves": 4,
        "lacunarity": 2.0,
        "gain": {"min": 0.1, "max": 0.8, "scale": 2.0},
        "warp": 0.3,
        "scale": 1.0,
        "power": 1.5,
    },
    "colors": [
        (-0.5, 0x994400),
        (0.0, 0xCCAA00),
        (0.4, 0xCC7700),
        (1.0, 0x002222),
    ],
    "sea_noise": {"min": -0.008, "max": 0.008, "scale": 6.0},
    "sea_colors": [
        (-1.0, 0x000066),
        (-0.55, 0x0000AA),
        (-0.1, 0x00F2E5),
    ],
    "vegetation": {
        "items": [
            {
                "name": "Rock",
                "density": 100,
                "minimum_height": SHORE_HEIGHT,
                "colors": {"Gray": [0x775544]},
            },
            {
                "name": "PalmTree",
                "density": 150,
                "minimum_height": SHORE_HEIGHT,
                "colors": {
                    "Brown": [0x8B4513, 0x5B3105],
                    "Green": [0x22851E, 0x22A51E],
                    "DarkGreen": [0x006400],
                },
                "ground": {"color": 0x229900, "radius": 0.1, "raise": 0.01},
            },
        ],
    },
}

FOREST: dict[str, Any] = {
    "name": "Forest",
    "noise": {
        "min": -0.05,
        "max": 0.05,
        "octaves": 4,
        "lacunarity": 2.0,
        "gain": {"min": 0.1, "max": 0.8, "scale": 2.0},
        "warp": 0.3,
        "scale": 1.0,
        "power": 0.8,
    },
    "tint_color": 0x113322,
    "colors": [
        (-0.5, 0x332200),
        (0.0, 0x115512),
        (0.4, 0x224411),
        (1.0, 0x006622),
    ],
    "sea_noise": {"min": -0.005, "max": 0.005, "scale": 5.0},
    "sea_colors": [
        (-1.0, 0x000066),
        (-0.52, 0x0000AA),
        (-0.1, 0x0042A5),
    ],
    "vegetation": {
        "items": [
            {"name": "CommonTree", "density": 25, "minimum_height": 0.0},
            {"name": "PineTree", "density": 25, "minimum_height": 0.0},
            {"name": "BirchTree", "density": 20, "minimum_height": 0.0},
        ],
    },
}

SNOW_FOREST: dict[str, Any] = {
    "name": "Snow Forest",
    "noise": {
        "min": -0.05,
        "max": 0.05,
        "octaves": 4,
        "lacunarity": 2.0,
        "gain": {"min": 0.1, "max": 0.8, "scale": 2.0},
        "warp": 0.3,
        "scale": 1.0,
        "power": 0.8,
    },
    "tint_color": 0x119922,
    "colors": [
        (-0.5, 0xFF99FF),
        (0.0, 0xFFFFFF),
        (0.4, 0xEEFFFF),
        (1.0, 0xFFFFFF),
    ],
    "sea_noise": {"min": 0.0, "max": 0.001, "scale": 5.0},
    "sea_colors": [
        (-1.0, 0x8899CC),
        (-0.52, 0xAACCFF),
        (-0.1, 0xAACCFF),
    ],
    "vegetation": {
        "items": [
            {"name": "PineTree_Snow", "density": 25, "minimum_height": 0.0},
            {"name": "CommonTree_Snow", "density": 25, "minimum_height": 0.0},
            {"name": "BirchTree_Snow", "density": 20, "minimum_height": 0.0},
        ],
    },
}

PRESETS: dict[str, dict[str, Any]] = {
    "beach": BEACH,
    "forest": FOREST,
    "snowForest": SNOW_FOREST,
}

# Keys whose values are themselves keyword dictionaries
_NESTED_KEYS = ("noise", "sea_noise")


def _preset_key(name: str) -> str:
    key = name.strip().lower().replace("_", "").replace("-", "").replace(" ", "")
    if key.endswith("preset"):
        key = key[: -len("preset")]
    return key


_PRESET_LOOKUP = {_preset_key(name): name for name in PRESETS}


def preset_names() -> list[str]:
    """Return the canonical names of all presets."""
    return list(PRESETS)


def get_preset(name: str) -> dict[str, Any] | None:
    """Look up a preset by name.

    Names are matched loosely: ``"forest"``, ``"Forest"``,
    ``"forest-preset"`` and ``"snow_forest"`` all resolve.

    Args:
        name: Preset name

    Returns:
        A deep copy of the preset dictionary, or None if unknown
    """
    canonical = _PRESET_LOOKUP.get(_preset_key(name))
    if canonical is None:
        return None
    preset = copy.deepcopy(PRESETS[canonical])
    preset["preset"] = canonical
    return preset


def _snake_keys(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        key = "raise" if key == "raise_" else to_snake(key)
        if key in _NESTED_KEYS and isinstance(value, dict):
            value = _snake_keys(value)
        result[key] = value
    return result


def merge_biome(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override values over a base biome dictionary.

    Noise sections merge key by key; every other key is replaced whole.
    """
    merged = dict(base)
    for key, value in override.items():
        if key in _NESTED_KEYS and isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def resolve_biome_config(value: Any) -> Any:
    """Turn a preset name, dictionary or None into biome input.

    Unknown preset names are logged and fall back to the defaults.

    Args:
        value: A ``BiomeConfig``, a preset name, a dictionary that may
            carry a ``preset`` key, or None

    Returns:
        A ``BiomeConfig`` or a dictionary ready for validation
    """
    if value is None:
        return BiomeConfig()
    if isinstance(value, BiomeConfig):
        return value
    if isinstance(value, str):
        value = {"preset": value}
    if not isinstance(value, dict):
        return value

    overrides = _snake_keys(value)
    preset_name = overrides.get("preset")
    if not preset_name:
        return overrides

    preset = get_preset(preset_name)
    if preset is None:
        logger.warning(f"Unknown biome preset '{preset_name}', using defaults")
        return {key: val for key, val in overrides.items() if key != "preset"}

    overrides.pop("preset")
    return merge_biome(preset, overrides)
