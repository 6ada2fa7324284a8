"""Tests for biome evaluation and vegetation placement."""

import math

import numpy as np
import pytest

from bonsai.terrain.biome import SEA_DEFAULT_COLOR, Biome
from bonsai.terrain.colors import WHITE, parse_color, tint
from bonsai.terrain.config import BiomeConfig, GroundConfig, VegetationRule


def _biome_with(*rules: VegetationRule, **kwargs) -> Biome:
    config = BiomeConfig(vegetation={"items": [rule.model_dump() for rule in rules]}, **kwargs)
    return Biome(config, seed=0)


class TestBiomeHeights:
    """Tests for height and color lookups."""

    def test_height_in_range(self) -> None:
        biome = Biome()
        for point in np.random.default_rng(0).normal(size=(50, 3)):
            assert biome.min <= biome.height_at(point) <= biome.max

    def test_normalize_height(self) -> None:
        biome = Biome()
        assert biome.normalize_height(biome.max) == pytest.approx(1.0)
        assert biome.normalize_height(biome.min) == pytest.approx(-1.0)

    def test_sea_uses_its_own_field(self) -> None:
        biome = Biome(seed=3)
        point = (0.2, 0.5, -0.8)
        assert biome.sea_noise.min <= biome.sea_height_at(point) <= biome.sea_noise.max
        assert biome.sea_noise.seed != biome.noise.seed

    def test_default_colors(self) -> None:
        """Without gradients, land is white and sea is blue."""
        biome = Biome()
        assert biome.color_at((0.0, 1.0, 0.0), 0.5) == WHITE
        assert biome.sea_color_at((0.0, 1.0, 0.0), -0.5) == SEA_DEFAULT_COLOR

    def test_gradient_color(self) -> None:
        biome = Biome(BiomeConfig(colors=[(-1.0, 0x000000), (1.0, 0xFFFFFF)]))
        assert biome.color_at((0.0, 1.0, 0.0), 0.0) == pytest.approx((0.5, 0.5, 0.5))

    def test_color_from_point(self) -> None:
        """Omitting the height samples it at the point."""
        biome = Biome(BiomeConfig(colors=[(-1.0, 0x000000), (1.0, 0xFFFFFF)]))
        point = (0.3, 0.4, 0.5)
        expected = biome.color_at(point, biome.normalized_height_at(point))
        assert biome.color_at(point) == expected

    def test_tint_grows_with_steepness(self) -> None:
        """Flat faces keep the gradient color; steep faces take the tint."""
        biome = Biome(
            BiomeConfig(colors=[(0.0, 0x808080)], tint_color=0x000000)
        )
        flat = biome.color_at((0.0, 1.0, 0.0), 0.0, steepness=0.0)
        steep = biome.color_at((0.0, 1.0, 0.0), 0.0, steepness=math.pi / 2)
        assert flat == pytest.approx(parse_color(0x808080))
        assert steep[0] < flat[0]

    def test_vertical_face_takes_full_tint(self) -> None:
        biome = Biome(
            BiomeConfig(colors=[(0.0, 0x808080)], tint_color=0x000000)
        )
        gray = parse_color(0x808080)
        vertical = biome.color_at((0.0, 1.0, 0.0), 0.0, steepness=math.pi / 2)
        half = biome.color_at((0.0, 1.0, 0.0), 0.0, steepness=math.pi / 4)
        assert vertical == pytest.approx(tint(gray, (0.0, 0.0, 0.0), 1.0))
        assert half == pytest.approx(tint(gray, (0.0, 0.0, 0.0), 0.5))


class TestVegetationPlacement:
    """Tests for try_place_vegetation."""

    def test_zero_density_never_places(self, rng: np.random.Generator) -> None:
        rule = VegetationRule(name="None", density=0)
        biome = _biome_with(rule)
        assert not biome.try_place_vegetation(rule, (0, 1, 0), 0.5, 0.0, 1.0, rng)
        assert len(biome.vegetation) == 0

    def test_places_and_indexes(self, always_rule: VegetationRule, rng: np.random.Generator) -> None:
        biome = _biome_with(always_rule)
        assert biome.try_place_vegetation(always_rule, (0, 1, 0), 0.5, 0.0, 1.0, rng)
        assert len(biome.vegetation) == 1
        assert biome.closest_vegetation_distance((0, 1, 0), 0.1) == 0.0

    def test_height_bounds(self, rng: np.random.Generator) -> None:
        rule = VegetationRule(name="Tree", density=1000, minimum_height=0.2, maximum_height=0.6)
        biome = _biome_with(rule)
        assert not biome.try_place_vegetation(rule, (0, 1, 0), 0.1, 0.0, 1.0, rng)
        assert not biome.try_place_vegetation(rule, (0, 1, 0), 0.7, 0.0, 1.0, rng)
        assert biome.try_place_vegetation(rule, (0, 1, 0), 0.4, 0.0, 1.0, rng)

    def test_slope_bounds(self, rng: np.random.Generator) -> None:
        rule = VegetationRule(name="Moss", density=1000, minimum_slope=0.2, maximum_slope=0.5)
        biome = _biome_with(rule)
        assert not biome.try_place_vegetation(rule, (0, 1, 0), 0.0, 0.1, 1.0, rng)
        assert not biome.try_place_vegetation(rule, (0, 1, 0), 0.0, 0.9, 1.0, rng)
        assert biome.try_place_vegetation(rule, (0, 1, 0), 0.0, 0.3, 1.0, rng)

    def test_minimum_distance(self, rng: np.random.Generator) -> None:
        rule = VegetationRule(name="Oak", density=1000, minimum_distance=0.2)
        biome = _biome_with(rule)
        assert biome.try_place_vegetation(rule, (0.0, 1.0, 0.0), 0.0, 0.0, 1.0, rng)
        assert not biome.try_place_vegetation(rule, (0.1, 1.0, 0.0), 0.0, 0.0, 1.0, rng)
        assert biome.try_place_vegetation(rule, (0.3, 1.0, 0.0), 0.0, 0.0, 1.0, rng)

    def test_maximum_distance(self, rng: np.random.Generator) -> None:
        """The first item is free; later ones must stay near existing items."""
        rule = VegetationRule(name="Fern", density=1000, maximum_distance=0.2)
        biome = _biome_with(rule)
        assert biome.try_place_vegetation(rule, (0.0, 1.0, 0.0), 0.0, 0.0, 1.0, rng)
        assert not biome.try_place_vegetation(rule, (0.5, 1.0, 0.0), 0.0, 0.0, 1.0, rng)
        assert biome.try_place_vegetation(rule, (0.1, 1.0, 0.0), 0.0, 0.0, 1.0, rng)

    def test_rock_density_damped(self) -> None:
        tree = VegetationRule(name="Tree", density=10)
        rock = VegetationRule(name="Rock", density=10)
        biome = _biome_with(tree, rock)
        assert biome.placement_probability(rock, 0.01) == pytest.approx(
            biome.placement_probability(tree, 0.01) * 0.1
        )

    def test_probability_scales_with_area(self) -> None:
        rule = VegetationRule(name="Tree", density=10)
        biome = _biome_with(rule)
        assert biome.placement_probability(rule, 0.02) == pytest.approx(1.0)

    def test_items_around(self, always_rule: VegetationRule, rng: np.random.Generator) -> None:
        biome = _biome_with(always_rule)
        biome.add_vegetation(always_rule, (0.0, 1.0, 0.0))
        biome.add_vegetation(always_rule, (1.0, 0.0, 0.0))
        around = biome.items_around((0.0, 0.99, 0.0), 0.1)
        assert [entry.point for entry in around] == [(0.0, 1.0, 0.0)]


class TestGroundEffect:
    """Tests for vegetation footprints."""

    def test_no_ground_rules(self, always_rule: VegetationRule) -> None:
        biome = _biome_with(always_rule)
        biome.add_vegetation(always_rule, (0.0, 1.0, 0.0))
        face = [(0.0, 1.0, 0.0), (0.01, 1.0, 0.0), (0.0, 1.0, 0.01)]
        assert biome.ground_effect(face, (0.5, 0.5, 0.5)) is None

    def test_raise_and_color(self) -> None:
        """A vertex on the item gets the full raise; the face takes its color."""
        rule = VegetationRule(
            name="Palm",
            density=1,
            ground=GroundConfig(color=0x00FF00, radius=0.5, raise_=0.1),
        )
        biome = _biome_with(rule)
        biome.add_vegetation(rule, (0.0, 1.0, 0.0))

        face = [(0.0, 1.0, 0.0), (0.25, 1.0, 0.0), (2.0, 1.0, 0.0)]
        effect = biome.ground_effect(face, (0.0, 0.0, 0.0))

        assert effect is not None
        assert effect.raises[0] == pytest.approx(0.1)
        assert effect.raises[1] == pytest.approx(0.05)
        assert effect.raises[2] == 0.0
        # Face center is outside the radius, so the color is unchanged
        assert effect.color == (0.0, 0.0, 0.0)

    def test_color_blend_near_center(self) -> None:
        rule = VegetationRule(
            name="Palm",
            density=1,
            ground=GroundConfig(color=0xFFFFFF, radius=1.0, raise_=0.0),
        )
        biome = _biome_with(rule)
        biome.add_vegetation(rule, (0.0, 1.0, 0.0))

        face = [(-0.01, 1.0, 0.0), (0.01, 1.0, 0.0), (0.0, 1.0, 0.01)]
        effect = biome.ground_effect(face, (0.0, 0.0, 0.0))

        assert effect is not None
        # Nearly on the item: close to the 80% color cap
        assert effect.color[0] == pytest.approx(0.8, abs=0.01)
