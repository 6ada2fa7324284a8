"""Planet configuration from TOML files."""

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .terrain.config import GenerationOptions


class WorkerConfig(BaseModel):
    """How a Planet runs its generation worker."""

    mode: Literal["thread", "process"] = "process"
    start_method: str = "spawn"  # multiprocessing start method for process mode
    fallback_detail: int = 2  # Highest detail used for fallback spheres
    shutdown_timeout: float = 5.0

    @field_validator("fallback_detail")
    @classmethod
    def _non_negative_detail(cls, value: int) -> int:
        return max(0, value)


class Config(BaseModel):
    """Complete planet configuration."""

    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    generation: GenerationOptions = Field(default_factory=GenerationOptions)


def load_config(config_path: Path) -> Config:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return Config.model_validate(data)
