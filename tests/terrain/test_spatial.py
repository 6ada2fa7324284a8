"""Tests for the vegetation spatial index."""

import math

import pytest

from bonsai.terrain.spatial import SpatialIndex


@pytest.fixture
def index() -> SpatialIndex[str]:
    """Index with a handful of points."""
    idx: SpatialIndex[str] = SpatialIndex(cell_size=0.1)
    idx.insert((0.0, 0.0, 0.0), "origin")
    idx.insert((0.05, 0.0, 0.0), "near")
    idx.insert((0.3, 0.0, 0.0), "mid")
    idx.insert((-1.0, -1.0, -1.0), "far")
    return idx


class TestSpatialIndex:
    """Tests for SpatialIndex."""

    def test_len(self, index: SpatialIndex[str]) -> None:
        assert len(index) == 4

    def test_query_radius(self, index: SpatialIndex[str]) -> None:
        """Radius query returns only points inside the sphere."""
        found = {entry.payload for entry in index.query((0.0, 0.0, 0.0), 0.1)}
        assert found == {"origin", "near"}

    def test_query_inclusive(self, index: SpatialIndex[str]) -> None:
        """A point exactly on the radius is included."""
        found = {entry.payload for entry in index.query((0.0, 0.0, 0.0), 0.3)}
        assert "mid" in found

    def test_query_box(self, index: SpatialIndex[str]) -> None:
        """Box query includes corners a radius query would miss."""
        idx: SpatialIndex[str] = SpatialIndex(cell_size=0.1)
        idx.insert((0.09, 0.09, 0.09), "corner")
        assert [e.payload for e in idx.query_box((0.0, 0.0, 0.0), 0.1)] == ["corner"]
        assert idx.query((0.0, 0.0, 0.0), 0.1) == []

    def test_negative_coordinates(self, index: SpatialIndex[str]) -> None:
        found = [entry.payload for entry in index.query((-1.0, -1.0, -0.95), 0.1)]
        assert found == ["far"]

    def test_large_radius_scans_everything(self, index: SpatialIndex[str]) -> None:
        """A radius spanning many cells still finds every point."""
        assert len(index.query((0.0, 0.0, 0.0), 100.0)) == 4

    def test_closest_distance(self, index: SpatialIndex[str]) -> None:
        assert index.closest_distance((0.3, 0.1, 0.0), 0.5) == pytest.approx(0.1)

    def test_closest_distance_none_outside_radius(self, index: SpatialIndex[str]) -> None:
        assert index.closest_distance((5.0, 5.0, 5.0), 0.5) is None

    def test_empty_index(self) -> None:
        idx: SpatialIndex[int] = SpatialIndex()
        assert idx.query((0.0, 0.0, 0.0), 1.0) == []
        assert idx.closest_distance((0.0, 0.0, 0.0), 1.0) is None

    def test_invalid_cell_size(self) -> None:
        with pytest.raises(ValueError):
            SpatialIndex(cell_size=0)

    def test_matches_brute_force(self) -> None:
        """Query results agree with a linear scan."""
        idx: SpatialIndex[int] = SpatialIndex(cell_size=0.07)
        points = [
            (math.sin(i * 0.7), math.cos(i * 1.3), math.sin(i * 0.31))
            for i in range(200)
        ]
        for i, point in enumerate(points):
            idx.insert(point, i)

        center = (0.1, 0.2, -0.3)
        expected = {i for i, p in enumerate(points) if math.dist(p, center) <= 0.4}
        assert {entry.payload for entry in idx.query(center, 0.4)} == expected
