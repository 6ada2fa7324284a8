"""Shared test fixtures for planet generation tests."""

import numpy as np
import pytest

from bonsai.terrain.config import GenerationOptions, VegetationRule


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def small_options() -> GenerationOptions:
    """Low-detail sphere with the default biome."""
    return GenerationOptions(detail=3, seed=7)


@pytest.fixture
def forest_options() -> GenerationOptions:
    """Low-detail sphere using the forest preset."""
    return GenerationOptions(detail=4, seed=3, biome="forest")


@pytest.fixture
def always_rule() -> VegetationRule:
    """Rule whose placement draw always succeeds on a unit-area face."""
    return VegetationRule(name="Shrub", density=1000.0)
