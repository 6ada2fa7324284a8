"""Procedural planet mesh generation."""

from .config import Config, WorkerConfig, load_config
from .exceptions import (
    BonsaiError,
    ConfigurationError,
    GenerationError,
    TransportError,
)
from .planet import Planet
from .terrain import GenerationOptions, GenerationResult, fallback_mesh, generate_mesh

__all__ = [
    # Planet
    "Planet",
    "Config",
    "WorkerConfig",
    "load_config",
    # Generation
    "GenerationOptions",
    "GenerationResult",
    "generate_mesh",
    "fallback_mesh",
    # Exceptions
    "BonsaiError",
    "ConfigurationError",
    "GenerationError",
    "TransportError",
]
