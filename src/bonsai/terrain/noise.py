"""Noise fields for terrain generation.

Provides seeded 3D simplex noise with fBm (fractal Brownian motion),
spatially varying gain, domain warping and sign-preserving power shaping.
"""

import math
from collections.abc import Sequence

from opensimplex import OpenSimplex

from .config import GainConfig, NoiseConfig

# Offsets keep the three warp samples decorrelated from each other
WARP_OFFSET = 100.0


def normalize_height(height: float, low: float, high: float) -> float:
    """Map a raw height onto the normalized height scale.

    Negative heights scale by ``|low|`` and positive heights by ``high``,
    so ``low`` maps to -1, zero to 0 and ``high`` to 1. A zero bound
    maps its whole side to 0.

    Args:
        height: Raw height.
        low: Lowest height the field produces.
        high: Highest height the field produces.

    Returns:
        Normalized height.
    """
    if height < 0:
        return height / abs(low) if low != 0 else 0.0
    return height / high if high > 0 else 0.0


class NoiseField:
    """A configured, seeded scalar field over 3D space.

    Output is deterministic for a given configuration and seed and always
    lies inside ``[config.min, config.max]``.
    """

    def __init__(self, config: NoiseConfig | None = None, seed: int = 0) -> None:
        """Create a noise field.

        Args:
            config: Field parameters. Defaults to a single octave in [-1, 1].
            seed: Seed used when the config does not carry its own.
        """
        self.config = config or NoiseConfig()
        self.seed = self.config.seed if self.config.seed is not None else seed
        self._simplex = OpenSimplex(seed=self.seed)

        self._gain_field: NoiseField | None = None
        if isinstance(self.config.gain, GainConfig):
            gain = self.config.gain
            self._gain_field = NoiseField(
                NoiseConfig(min=gain.min, max=gain.max, scale=gain.scale),
                seed=self.seed + 1,
            )

    @property
    def min(self) -> float:
        return self.config.min

    @property
    def max(self) -> float:
        return self.config.max

    def __call__(self, point: Sequence[float]) -> float:
        return self.sample(point)

    def sample(self, point: Sequence[float]) -> float:
        """Sample the field at a point.

        Args:
            point: (x, y, z) coordinates.

        Returns:
            Field value in [min, max].
        """
        cfg = self.config
        x = float(point[0]) * cfg.scale
        y = float(point[1]) * cfg.scale
        z = float(point[2]) * cfg.scale

        if cfg.warp > 0:
            noise3 = self._simplex.noise3
            dx = noise3(x, y + WARP_OFFSET, z + WARP_OFFSET) * cfg.warp
            dy = noise3(x + WARP_OFFSET, y, z + WARP_OFFSET) * cfg.warp
            dz = noise3(x + WARP_OFFSET, y + WARP_OFFSET, z) * cfg.warp
            x, y, z = x + dx, y + dy, z + dz

        if cfg.octaves > 1:
            value = self._fbm(x, y, z)
        else:
            value = self._simplex.noise3(x, y, z)

        if cfg.power != 1.0:
            value = math.copysign(abs(value) ** cfg.power, value)

        # Rescale [-1, 1] onto [min, max]
        result = cfg.min + (value + 1.0) * 0.5 * (cfg.max - cfg.min)
        return min(max(result, cfg.min), cfg.max)

    def normalized(self, point: Sequence[float]) -> float:
        """Sample the field and return its normalized height."""
        return normalize_height(self.sample(point), self.min, self.max)

    def _fbm(self, x: float, y: float, z: float) -> float:
        """Sum octaves of simplex noise, normalized by total amplitude."""
        cfg = self.config
        noise3 = self._simplex.noise3

        total = 0.0
        amplitude = 1.0
        max_amplitude = 0.0
        frequency = 1.0
        gain = self._gain_at(x, y, z)

        for _ in range(cfg.octaves):
            total += noise3(x * frequency, y * frequency, z * frequency) * amplitude
            max_amplitude += amplitude
            amplitude *= gain
            frequency *= cfg.lacunarity

        return total / max_amplitude

    def _gain_at(self, x: float, y: float, z: float) -> float:
        if self._gain_field is None:
            return float(self.config.gain)
        return self._gain_field.sample((x, y, z))
