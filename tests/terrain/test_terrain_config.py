"""Tests for generation options, biome configs and presets."""

from bonsai.terrain.config import (
    BiomeConfig,
    GenerationOptions,
    GroundConfig,
    VegetationConfig,
    VegetationRule,
)
from bonsai.terrain.presets import get_preset, preset_names, resolve_biome_config


class TestPresets:
    """Tests for preset lookup and merging."""

    def test_preset_names(self) -> None:
        assert preset_names() == ["beach", "forest", "snowForest"]

    def test_loose_names(self) -> None:
        """Case, separators and a -preset suffix are ignored."""
        assert get_preset("forest-preset")["preset"] == "forest"
        assert get_preset("Forest")["preset"] == "forest"
        assert get_preset("snow_forest")["preset"] == "snowForest"
        assert get_preset("snowForest")["preset"] == "snowForest"

    def test_unknown_preset(self) -> None:
        assert get_preset("volcano") is None

    def test_preset_copy_is_independent(self) -> None:
        """Mutating a returned preset leaves the registry intact."""
        preset = get_preset("beach")
        preset["vegetation"]["items"].clear()
        assert len(get_preset("beach")["vegetation"]["items"]) == 2

    def test_forest_preset_resolves(self) -> None:
        options = GenerationOptions(biome="forest")
        biome = options.biome
        assert biome.preset == "forest"
        assert biome.tint_color == 0x113322
        assert [rule.name for rule in biome.vegetation.items] == [
            "CommonTree",
            "PineTree",
            "BirchTree",
        ]
        assert biome.noise.power == 0.8

    def test_explicit_values_win(self) -> None:
        """Overrides replace preset values; noise merges key by key."""
        options = GenerationOptions(
            biome={"preset": "forest", "noise": {"octaves": 6}, "tintColor": 0xFF0000}
        )
        assert options.biome.noise.octaves == 6
        assert options.biome.noise.power == 0.8
        assert options.biome.noise.min == -0.05
        assert options.biome.tint_color == 0xFF0000

    def test_unknown_preset_uses_defaults(self) -> None:
        options = GenerationOptions(biome="volcano")
        assert options.biome.colors == []
        assert options.biome.vegetation.items == []

    def test_none_resolves_to_defaults(self) -> None:
        assert resolve_biome_config(None) == BiomeConfig()

    def test_beach_palm_ground(self) -> None:
        biome = GenerationOptions(biome="beach").biome
        palm = biome.vegetation.items[1]
        assert palm.name == "PalmTree"
        assert palm.ground is not None
        assert palm.ground.raise_ == 0.01
        assert set(palm.colors) == {"Brown", "Green", "DarkGreen"}
        assert palm.colors["Brown"] == [0x8B4513, 0x5B3105]

    def test_dump_and_revalidate(self) -> None:
        """Dumped options validate back to the same options."""
        options = GenerationOptions(biome="beach", detail=5, seed=11)
        assert GenerationOptions.model_validate(options.model_dump()) == options


class TestBiomeConfig:
    """Tests for BiomeConfig defaults."""

    def test_height_noise_defaults(self) -> None:
        config = BiomeConfig()
        assert config.noise.min == -0.05
        assert config.noise.max == 0.05
        assert config.noise.octaves == 4
        assert config.noise.power == 1.5

    def test_partial_noise_keeps_height_defaults(self) -> None:
        config = BiomeConfig.model_validate({"noise": {"octaves": 2}})
        assert config.noise.octaves == 2
        assert config.noise.max == 0.05

    def test_camel_case_sea_noise(self) -> None:
        config = BiomeConfig.model_validate({"seaNoise": {"min": -0.01}})
        assert config.sea_noise.min == -0.01
        assert config.sea_noise.scale == 5.0


class TestVegetationConfig:
    """Tests for vegetation rules."""

    def test_defaults_apply_to_items(self) -> None:
        config = VegetationConfig.model_validate(
            {
                "defaults": {"density": 5, "maximumSlope": 0.4},
                "items": [{"name": "A"}, {"name": "B", "density": 1}],
            }
        )
        a, b = config.items
        assert a.density == 5
        assert b.density == 1
        assert a.maximum_slope == 0.4

    def test_item_values_win_over_mixed_case_defaults(self) -> None:
        """An item value beats a default spelled in the other key style."""
        config = VegetationConfig.model_validate(
            {
                "defaults": {"minimumHeight": 0.1, "maximum_slope": 0.3},
                "items": [{"name": "A", "density": 1, "minimum_height": 0.6, "maximumSlope": 0.9}],
            }
        )
        [rule] = config.items
        assert rule.minimum_height == 0.6
        assert rule.maximum_slope == 0.9

    def test_negative_density_clamped(self) -> None:
        assert VegetationRule(name="A", density=-3).density == 0.0

    def test_is_rock(self) -> None:
        assert VegetationRule(name="MossyRock").is_rock
        assert VegetationRule(name="rock_small").is_rock
        assert not VegetationRule(name="PineTree").is_rock

    def test_ground_raise_alias(self) -> None:
        ground = GroundConfig.model_validate({"raise": 0.02, "radius": 0.3})
        assert ground.raise_ == 0.02
        assert ground.radius == 0.3


class TestGenerationOptions:
    """Tests for option clamping."""

    def test_defaults(self) -> None:
        options = GenerationOptions()
        assert options.shape == "sphere"
        assert options.detail == 20
        assert options.scatter == 1.2
        assert options.minimum_placements == 1

    def test_negative_values_clamped(self) -> None:
        options = GenerationOptions(detail=-3, scatter=-1.0, minimum_placements=-2)
        assert options.detail == 0
        assert options.scatter == 0.0
        assert options.minimum_placements == 0

    def test_precision_clamped(self) -> None:
        assert GenerationOptions(cache_precision=40).cache_precision == 12
