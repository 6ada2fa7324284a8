"""Planet generation configuration models."""

from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel, to_snake

# A color may be given as 0xRRGGBB, "#rrggbb" or an (r, g, b) float triple.
ColorValue = int | str | tuple[float, float, float]

HEIGHT_NOISE_DEFAULTS: dict[str, Any] = {
    "min": -0.05,
    "max": 0.05,
    "octaves": 4,
    "lacunarity": 2.0,
    "warp": 0.3,
    "scale": 1.0,
    "power": 1.5,
}

SEA_NOISE_DEFAULTS: dict[str, Any] = {
    "min": -0.005,
    "max": 0.005,
    "scale": 5.0,
}


class _ConfigModel(BaseModel):
    """Frozen model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class GainConfig(_ConfigModel):
    """Spatially varying fBm gain."""

    min: float = Field(default=0.1, description="Gain where the gain noise is lowest")
    max: float = Field(default=0.8, description="Gain where the gain noise is highest")
    scale: float = Field(default=2.0, description="Frequency of the gain noise")

    @field_validator("scale")
    @classmethod
    def _positive_scale(cls, value: float) -> float:
        return value if value > 0 else 2.0

    @model_validator(mode="after")
    def _ordered_non_negative(self) -> "GainConfig":
        low, high = sorted((max(0.0, self.min), max(0.0, self.max)))
        object.__setattr__(self, "min", low)
        object.__setattr__(self, "max", high)
        return self


class NoiseConfig(_ConfigModel):
    """Parameters for a single noise field."""

    min: float = Field(default=-1.0, description="Lowest output value")
    max: float = Field(default=1.0, description="Highest output value")
    octaves: int = Field(default=1, description="Number of fBm octaves")
    lacunarity: float = Field(default=2.0, description="Frequency multiplier per octave")
    gain: float | GainConfig = Field(
        default=0.5, description="Amplitude multiplier per octave"
    )
    warp: float = Field(default=0.0, description="Domain warp strength")
    scale: float = Field(default=1.0, description="Input coordinate scale")
    power: float = Field(default=1.0, description="Sign-preserving output exponent")
    seed: int | None = Field(
        default=None, description="Noise seed (None = derived from the request seed)"
    )

    @field_validator("octaves")
    @classmethod
    def _clamp_octaves(cls, value: int) -> int:
        return max(1, value)

    @field_validator("lacunarity")
    @classmethod
    def _positive_lacunarity(cls, value: float) -> float:
        return value if value > 0 else 2.0

    @field_validator("gain")
    @classmethod
    def _non_negative_gain(cls, value: float | GainConfig) -> float | GainConfig:
        if isinstance(value, GainConfig):
            return value
        return max(0.0, value)

    @field_validator("warp")
    @classmethod
    def _non_negative_warp(cls, value: float) -> float:
        return max(0.0, value)

    @field_validator("scale")
    @classmethod
    def _positive_scale(cls, value: float) -> float:
        return value if value > 0 else 1.0

    @field_validator("power")
    @classmethod
    def _positive_power(cls, value: float) -> float:
        return value if value > 0 else 1.0

    @model_validator(mode="after")
    def _ordered_range(self) -> "NoiseConfig":
        if self.min > self.max:
            low, high = self.max, self.min
            object.__setattr__(self, "min", low)
            object.__setattr__(self, "max", high)
        return self


class GroundConfig(_ConfigModel):
    """Terrain footprint left around a placed vegetation item."""

    raise_: float = Field(
        default=0.0, alias="raise", description="Height added at the item's center"
    )
    color: ColorValue = Field(default=0xFFFFFF, description="Ground tint color")
    radius: float = Field(default=0.1, description="Footprint radius")

    @field_validator("radius")
    @classmethod
    def _non_negative_radius(cls, value: float) -> float:
        return max(0.0, value)


class VegetationRule(_ConfigModel):
    """Placement rule for one kind of vegetation."""

    name: str
    density: float = Field(default=0.0, description="Placements per unit area")
    minimum_height: float | None = Field(default=None, description="Lowest normalized height")
    maximum_height: float | None = Field(default=None, description="Highest normalized height")
    minimum_slope: float | None = Field(default=None, description="Lowest steepness (radians)")
    maximum_slope: float | None = Field(default=None, description="Highest steepness (radians)")
    minimum_distance: float | None = Field(
        default=None, description="Closest allowed distance to other vegetation"
    )
    maximum_distance: float | None = Field(
        default=None, description="Farthest allowed distance to other vegetation"
    )
    colors: dict[str, list[ColorValue]] = Field(
        default_factory=dict, description="Named color variant palettes"
    )
    ground: GroundConfig | None = Field(default=None, description="Ground footprint")

    @field_validator("density")
    @classmethod
    def _non_negative_density(cls, value: float) -> float:
        return max(0.0, value)

    @property
    def is_rock(self) -> bool:
        """Whether this rule places rocks rather than plants."""
        return "rock" in self.name.lower()

    @property
    def has_distance_bounds(self) -> bool:
        return self.minimum_distance is not None or self.maximum_distance is not None


def _snake_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {to_snake(key): value for key, value in data.items()}


class VegetationConfig(_ConfigModel):
    """Vegetation rule set with shared defaults."""

    defaults: dict[str, Any] = Field(
        default_factory=dict, description="Values applied to every item"
    )
    items: list[VegetationRule] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        defaults = data.get("defaults") or {}
        if not defaults:
            return data
        defaults = _snake_keys(defaults)
        items = [
            {**defaults, **_snake_keys(item)} if isinstance(item, dict) else item
            for item in data.get("items") or []
        ]
        return {**data, "items": items}


class BiomeConfig(_ConfigModel):
    """Complete biome description: height, sea, colors and vegetation."""

    name: str | None = Field(default=None, description="Display name")
    preset: str | None = Field(default=None, description="Preset the biome was built from")
    noise: NoiseConfig = Field(
        default_factory=lambda: NoiseConfig(**HEIGHT_NOISE_DEFAULTS),
        description="Terrain height noise",
    )
    colors: list[tuple[float, ColorValue]] = Field(
        default_factory=list, description="Land color gradient over normalized height"
    )
    sea_noise: NoiseConfig = Field(
        default_factory=lambda: NoiseConfig(**SEA_NOISE_DEFAULTS),
        description="Sea level noise",
    )
    sea_colors: list[tuple[float, ColorValue]] = Field(
        default_factory=list, description="Sea color gradient over normalized height"
    )
    tint_color: ColorValue | None = Field(
        default=None, description="Tint blended into steep land faces"
    )
    vegetation: VegetationConfig = Field(default_factory=VegetationConfig)

    @field_validator("noise", mode="before")
    @classmethod
    def _height_noise_defaults(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {**HEIGHT_NOISE_DEFAULTS, **value}
        return value

    @field_validator("sea_noise", mode="before")
    @classmethod
    def _sea_noise_defaults(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {**SEA_NOISE_DEFAULTS, **value}
        return value


class GenerationOptions(_ConfigModel):
    """Everything a single mesh generation request needs."""

    shape: Literal["sphere", "plane"] = Field(default="sphere", description="Base shape")
    detail: int = Field(default=20, description="Subdivision level")
    scatter: float = Field(
        default=1.2, description="Vertex jitter as a multiple of the face side length"
    )
    seed: int = Field(default=0, description="Seed for noise and placement draws")
    biome: BiomeConfig = Field(default_factory=BiomeConfig)
    cache_precision: int = Field(
        default=5, description="Decimals used to key the shared-vertex cache"
    )
    minimum_placements: int = Field(
        default=1, description="Backfill rules that place fewer items than this"
    )

    @field_validator("detail")
    @classmethod
    def _non_negative_detail(cls, value: int) -> int:
        return max(0, value)

    @field_validator("scatter")
    @classmethod
    def _non_negative_scatter(cls, value: float) -> float:
        return max(0.0, value)

    @field_validator("cache_precision")
    @classmethod
    def _clamp_precision(cls, value: int) -> int:
        return min(max(value, 0), 12)

    @field_validator("minimum_placements")
    @classmethod
    def _non_negative_minimum(cls, value: int) -> int:
        return max(0, value)

    @field_validator("biome", mode="before")
    @classmethod
    def _resolve_biome(cls, value: Any) -> Any:
        # Imported here: presets depend on this module
        from .presets import resolve_biome_config

        return resolve_biome_config(value)
