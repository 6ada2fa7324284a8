"""Cell-based spatial indexing for placed vegetation."""

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

Point = tuple[float, float, float]

DEFAULT_CELL_SIZE = 0.05


@dataclass(frozen=True)
class SpatialEntry(Generic[T]):
    """A point stored in a SpatialIndex with its payload."""

    point: Point
    payload: T


class SpatialIndex(Generic[T]):
    """Hash grid over 3D points.

    Points are bucketed into cubic cells of ``cell_size``. Radius and box
    queries only visit the cells that overlap the query volume, falling
    back to a full scan when that would touch more cells than there are
    entries.
    """

    def __init__(self, cell_size: float = DEFAULT_CELL_SIZE):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self._cells: dict[tuple[int, int, int], list[SpatialEntry[T]]] = {}
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[SpatialEntry[T]]:
        for bucket in self._cells.values():
            yield from bucket

    def cell_coords(self, point: Sequence[float]) -> tuple[int, int, int]:
        """Convert a point to the coordinates of its cell."""
        size = self.cell_size
        return (
            math.floor(point[0] / size),
            math.floor(point[1] / size),
            math.floor(point[2] / size),
        )

    def insert(self, point: Sequence[float], payload: T) -> SpatialEntry[T]:
        """Add a point to the index.

        Returns:
            The stored entry.
        """
        entry = SpatialEntry((float(point[0]), float(point[1]), float(point[2])), payload)
        self._cells.setdefault(self.cell_coords(entry.point), []).append(entry)
        self._count += 1
        return entry

    def query_box(self, center: Sequence[float], half_extent: float) -> list[SpatialEntry[T]]:
        """Return entries inside an axis-aligned cube.

        Args:
            center: Cube center.
            half_extent: Half the cube's side length.

        Returns:
            Entries whose points lie inside the cube (inclusive).
        """
        if half_extent < 0 or self._count == 0:
            return []

        low = [center[i] - half_extent for i in range(3)]
        high = [center[i] + half_extent for i in range(3)]

        def inside(entry: SpatialEntry[T]) -> bool:
            return all(low[i] <= entry.point[i] <= high[i] for i in range(3))

        return [entry for entry in self._candidates(low, high) if inside(entry)]

    def query(self, center: Sequence[float], radius: float) -> list[SpatialEntry[T]]:
        """Return entries within a Euclidean radius of a point (inclusive)."""
        if radius < 0 or self._count == 0:
            return []
        return [
            entry
            for entry in self.query_box(center, radius)
            if math.dist(entry.point, center) <= radius
        ]

    def closest_distance(self, center: Sequence[float], radius: float) -> float | None:
        """Distance to the nearest entry within a radius.

        Returns:
            The smallest distance, or None if no entry lies within radius.
        """
        distances = [math.dist(entry.point, center) for entry in self.query(center, radius)]
        return min(distances) if distances else None

    def _candidates(self, low: list[float], high: list[float]) -> Iterator[SpatialEntry[T]]:
        """Yield entries from every cell overlapping a box."""
        low_cell = self.cell_coords(low)
        high_cell = self.cell_coords(high)
        spans = [high_cell[i] - low_cell[i] + 1 for i in range(3)]

        # Visiting every overlapped cell would cost more than a scan
        if spans[0] * spans[1] * spans[2] > max(len(self._cells), 1):
            yield from self
            return

        for cx in range(low_cell[0], high_cell[0] + 1):
            for cy in range(low_cell[1], high_cell[1] + 1):
                for cz in range(low_cell[2], high_cell[2] + 1):
                    bucket = self._cells.get((cx, cy, cz))
                    if bucket:
                        yield from bucket
