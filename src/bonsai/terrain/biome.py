"""Biomes: height, sea, coloring and vegetation rules for a planet."""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .colors import RGB, WHITE, ColorGradient, lerp_color, parse_color, tint
from .config import BiomeConfig, VegetationRule
from .noise import NoiseField, normalize_height
from .spatial import SpatialEntry, SpatialIndex

logger = logging.getLogger(__name__)

# Seed offsets so the sea does not mirror the land
SEA_SEED_OFFSET = 100

# Expected placements per face scale with area times this factor
PLACEMENT_FACTOR = 5.0
ROCK_DENSITY_FACTOR = 0.1

# Search radius used when a rule bounds only the minimum distance
DEFAULT_DISTANCE_RADIUS = 1.0

# Ground footprints blend at most this much of their color
GROUND_COLOR_WEIGHT = 0.8

SEA_DEFAULT_COLOR: RGB = (0.0, 0.0, 1.0)


@dataclass
class GroundEffect:
    """Combined footprint of nearby vegetation on one face."""

    raises: tuple[float, float, float]
    color: RGB


class Biome:
    """Evaluates a BiomeConfig and tracks vegetation placed on one mesh.

    A Biome is built per generation request; its vegetation index starts
    empty and only lives as long as that request.
    """

    def __init__(self, config: BiomeConfig | None = None, seed: int = 0, cell_size: float = 0.05):
        self.config = config or BiomeConfig()
        self.seed = seed
        self.noise = NoiseField(self.config.noise, seed=seed)
        self.sea_noise = NoiseField(self.config.sea_noise, seed=seed + SEA_SEED_OFFSET)

        self.colors = ColorGradient(self.config.colors) if self.config.colors else None
        self.sea_colors = ColorGradient(self.config.sea_colors) if self.config.sea_colors else None
        self.tint_color = (
            parse_color(self.config.tint_color) if self.config.tint_color is not None else None
        )

        self.rules: list[VegetationRule] = list(self.config.vegetation.items)
        self.vegetation: SpatialIndex[VegetationRule] = SpatialIndex(cell_size)
        self._ground_reach = max(
            (rule.ground.radius for rule in self.rules if rule.ground is not None),
            default=0.0,
        )
        self._ground_colors = {
            rule.name: parse_color(rule.ground.color)
            for rule in self.rules
            if rule.ground is not None
        }
        logger.debug(
            f"Biome {self.config.name or 'default'}: {len(self.rules)} vegetation rules, "
            f"height range [{self.min}, {self.max}]"
        )

    @property
    def min(self) -> float:
        return self.noise.min

    @property
    def max(self) -> float:
        return self.noise.max

    def height_at(self, point: Sequence[float]) -> float:
        """Terrain height at a point, in [min, max]."""
        return self.noise.sample(point)

    def sea_height_at(self, point: Sequence[float]) -> float:
        """Sea surface height at a point."""
        return self.sea_noise.sample(point)

    def normalize_height(self, height: float) -> float:
        """Normalize a raw terrain height to roughly [-1, 1]."""
        return normalize_height(height, self.min, self.max)

    def normalized_height_at(self, point: Sequence[float]) -> float:
        return self.noise.normalized(point)

    def color_at(
        self,
        point: Sequence[float],
        normalized_height: float | None = None,
        steepness: float = 0.0,
    ) -> RGB:
        """Land color for a face.

        Args:
            point: Face position, used when no height is given.
            normalized_height: Normalized height of the face.
            steepness: Angle between face normal and up, in [0, pi/2].

        Returns:
            RGB color in [0, 1].
        """
        if self.colors is None:
            return WHITE
        if normalized_height is None:
            normalized_height = self.normalized_height_at(point)

        color = self.colors.get(normalized_height)
        if self.tint_color is not None:
            color = tint(color, self.tint_color, steepness / (math.pi / 2))
        return color

    def sea_color_at(self, point: Sequence[float], normalized_height: float | None = None) -> RGB:
        """Sea color for a face, chosen by the land height beneath it."""
        if self.sea_colors is None:
            return SEA_DEFAULT_COLOR
        if normalized_height is None:
            normalized_height = self.normalized_height_at(point)
        return self.sea_colors.get(normalized_height)

    def placement_probability(self, rule: VegetationRule, face_area: float) -> float:
        """Chance that a face receives one item of a rule, before constraints."""
        probability = rule.density * face_area * PLACEMENT_FACTOR
        if rule.is_rock:
            probability *= ROCK_DENSITY_FACTOR
        return probability

    def try_place_vegetation(
        self,
        rule: VegetationRule,
        point: Sequence[float],
        normalized_height: float,
        steepness: float,
        face_area: float,
        rng: np.random.Generator,
    ) -> bool:
        """Attempt to place one vegetation item at a point.

        The placement draw comes first so that every face consumes the same
        random sequence regardless of which constraints reject it.

        Args:
            rule: Vegetation rule.
            point: Candidate position.
            normalized_height: Normalized terrain height at the point.
            steepness: Face steepness in radians.
            face_area: Area of the face the point lies on.
            rng: Random number generator for the placement draw.

        Returns:
            True if the item was placed and indexed.
        """
        if rule.density <= 0:
            return False
        if rng.random() >= self.placement_probability(rule, face_area):
            return False

        if rule.minimum_height is not None and normalized_height < rule.minimum_height:
            return False
        if rule.maximum_height is not None and normalized_height > rule.maximum_height:
            return False
        if rule.minimum_slope is not None and steepness < rule.minimum_slope:
            return False
        if rule.maximum_slope is not None and steepness > rule.maximum_slope:
            return False

        if rule.has_distance_bounds and not self._distance_allows(rule, point):
            return False

        self.add_vegetation(rule, point)
        return True

    def _distance_allows(self, rule: VegetationRule, point: Sequence[float]) -> bool:
        radius = max(
            rule.maximum_distance if rule.maximum_distance is not None else DEFAULT_DISTANCE_RADIUS,
            rule.minimum_distance or 0.0,
        )
        closest = self.closest_vegetation_distance(point, radius)

        if rule.minimum_distance is not None and closest is not None:
            if closest < rule.minimum_distance:
                return False
        if rule.maximum_distance is not None and len(self.vegetation) > 0:
            if closest is None or closest > rule.maximum_distance:
                return False
        return True

    def add_vegetation(self, rule: VegetationRule, point: Sequence[float]) -> SpatialEntry[VegetationRule]:
        """Record a placed item in the vegetation index."""
        return self.vegetation.insert(point, rule)

    def closest_vegetation_distance(self, point: Sequence[float], radius: float) -> float | None:
        """Distance to the closest placed item within a radius, or None."""
        return self.vegetation.closest_distance(point, radius)

    def items_around(self, point: Sequence[float], radius: float) -> list[SpatialEntry[VegetationRule]]:
        """Placed items within a radius of a point."""
        return self.vegetation.query(point, radius)

    def ground_effect(
        self,
        vertices: Sequence[Sequence[float]],
        color: RGB,
    ) -> GroundEffect | None:
        """Footprint of nearby vegetation on a face.

        Each item with a ground config raises the face's vertices by
        ``raise * (cos(pi * d / radius) + 1) / 2`` for vertex distances
        ``d`` inside its radius, and blends its ground color into the face
        color by up to 80% depending on the distance to the face center.

        Args:
            vertices: The face's three base (un-elevated) vertices.
            color: Current face color.

        Returns:
            The effect, or None when no footprint touches the face.
        """
        if self._ground_reach <= 0 or len(self.vegetation) == 0:
            return None

        a, b, c = vertices
        mid = tuple((a[i] + b[i] + c[i]) / 3.0 for i in range(3))
        # Any item within reach of a vertex lies within this distance of the center
        extent = max(math.dist(mid, vertex) for vertex in (a, b, c))
        nearby = self.items_around(mid, self._ground_reach + extent)

        raises = [0.0, 0.0, 0.0]
        touched = False
        for entry in nearby:
            ground = entry.payload.ground
            if ground is None or ground.radius <= 0:
                continue

            for index, vertex in enumerate((a, b, c)):
                distance = math.dist(entry.point, vertex)
                if distance < ground.radius:
                    raises[index] += ground.raise_ * (math.cos(math.pi * distance / ground.radius) + 1) / 2
                    touched = True

            distance = math.dist(entry.point, mid)
            if distance < ground.radius:
                weight = (1 - distance / ground.radius) * GROUND_COLOR_WEIGHT
                color = lerp_color(color, self._ground_colors[entry.payload.name], weight)
                touched = True

        if not touched:
            return None
        return GroundEffect(raises=(raises[0], raises[1], raises[2]), color=color)
