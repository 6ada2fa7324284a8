"""Color parsing, gradients and blending."""

import bisect
import math
from collections.abc import Iterable

from ..exceptions import ConfigurationError
from .config import ColorValue

RGB = tuple[float, float, float]

WHITE: RGB = (1.0, 1.0, 1.0)


def parse_color(value: ColorValue) -> RGB:
    """Convert a color value to an RGB float triple in [0, 1].

    Args:
        value: 0xRRGGBB integer, "#rrggbb" string or (r, g, b) floats.
            Integers and float channels are clamped into range.

    Returns:
        (r, g, b) tuple.

    Raises:
        ConfigurationError: If the value cannot be read as a color.
    """
    if isinstance(value, str):
        text = value.strip().removeprefix("#").removeprefix("0x")
        try:
            value = int(text, 16)
        except ValueError as e:
            raise ConfigurationError(f"Invalid color: {value!r}") from e

    if isinstance(value, int):
        value = min(max(value, 0), 0xFFFFFF)
        return (
            ((value >> 16) & 0xFF) / 255.0,
            ((value >> 8) & 0xFF) / 255.0,
            (value & 0xFF) / 255.0,
        )

    try:
        r, g, b = (float(c) for c in value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid color: {value!r}") from e
    return (_clamp(r), _clamp(g), _clamp(b))


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def lerp_color(a: RGB, b: RGB, t: float) -> RGB:
    """Linearly interpolate between two colors."""
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )


def soft_light(base: float, blend: float) -> float:
    """Soft-light blend of one channel.

    Darkens the base where the blend is below 0.5 and lightens it
    otherwise, never leaving [0, 1].
    """
    if blend < 0.5:
        return base - (1.0 - 2.0 * blend) * base * (1.0 - base)
    return base + (2.0 * blend - 1.0) * (math.sqrt(base) - base)


def tint(color: RGB, tint_color: RGB, weight: float) -> RGB:
    """Blend a soft-light tint into a color.

    Args:
        color: Base color.
        tint_color: Tint applied with soft light.
        weight: 0 keeps the base color, 1 gives the full soft-light result.

    Returns:
        Tinted color clamped to [0, 1].
    """
    weight = _clamp(weight)
    blended = tuple(soft_light(c, t) for c, t in zip(color, tint_color))
    mixed = lerp_color(color, blended, weight)
    return (_clamp(mixed[0]), _clamp(mixed[1]), _clamp(mixed[2]))


class ColorGradient:
    """Piecewise-linear color ramp over a scalar position.

    Positions below the first stop take the first color and positions
    above the last stop take the last color.
    """

    def __init__(self, stops: Iterable[tuple[float, ColorValue]]) -> None:
        ordered = sorted(((float(pos), parse_color(col)) for pos, col in stops), key=lambda s: s[0])
        if not ordered:
            raise ConfigurationError("Color gradient needs at least one stop")
        self._positions = [pos for pos, _ in ordered]
        self._colors = [col for _, col in ordered]

    def __len__(self) -> int:
        return len(self._positions)

    def get(self, position: float) -> RGB:
        """Return the color at a position."""
        if math.isnan(position) or position <= self._positions[0]:
            return self._colors[0]
        if position >= self._positions[-1]:
            return self._colors[-1]

        upper = bisect.bisect_right(self._positions, position)
        lower = upper - 1
        start, end = self._positions[lower], self._positions[upper]
        span = end - start
        t = (position - start) / span if span > 0 else 0.0
        return lerp_color(self._colors[lower], self._colors[upper], t)

    __call__ = get
