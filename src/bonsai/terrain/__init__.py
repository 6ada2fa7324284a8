"""Procedural planet terrain generation package.

This package implements noise-based height fields, biome coloring,
vegetation placement and the ocean shell for sphere and plane planets.
"""

from .biome import Biome
from .colors import ColorGradient, parse_color
from .config import (
    BiomeConfig,
    GainConfig,
    GenerationOptions,
    GroundConfig,
    NoiseConfig,
    VegetationConfig,
    VegetationRule,
)
from .generator import (
    GenerationResult,
    MeshBuffers,
    MeshGenerator,
    OceanBuffers,
    fallback_mesh,
    generate_mesh,
)
from .geometry import face_count
from .noise import NoiseField
from .presets import get_preset, preset_names
from .spatial import SpatialIndex

__all__ = [
    "Biome",
    "BiomeConfig",
    "ColorGradient",
    "GainConfig",
    "GenerationOptions",
    "GenerationResult",
    "GroundConfig",
    "MeshBuffers",
    "MeshGenerator",
    "NoiseConfig",
    "NoiseField",
    "OceanBuffers",
    "SpatialIndex",
    "VegetationConfig",
    "VegetationRule",
    "face_count",
    "fallback_mesh",
    "generate_mesh",
    "get_preset",
    "parse_color",
    "preset_names",
]
