"""Planet mesh generation.

Builds a base mesh, displaces every vertex by the biome's height field,
shades faces, places vegetation and finally lets vegetation footprints
reshape the ground beneath them. A matching ocean shell with a tide
morph target is produced alongside the terrain.
"""

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..exceptions import GenerationError
from .biome import Biome
from .config import GenerationOptions, NoiseConfig
from .geometry import PLANE_SIZE, base_mesh, face_area_total, face_normals, icosphere
from .noise import NoiseField

logger = logging.getLogger(__name__)

# Scatter noise varies quickly so neighbouring vertices jitter independently
SCATTER_NOISE_SCALE = 100.0
SCATTER_SEED_OFFSET = 200
SCATTER_AXIS_OFFSETS = (100.0, 200.0)

# The tide morph samples the sea field away from the resting surface
SEA_MORPH_OFFSET = 100.0

# Anchor points for rules that placed too few items
SPHERE_ANCHORS: tuple[tuple[float, float, float], ...] = (
    (0.0, 1.0, 0.0),
    (1.0, 0.0, 0.0),
    (0.0, 0.0, 1.0),
    (-1.0, 0.0, 0.0),
    (0.0, 0.0, -1.0),
    (math.sqrt(0.5), math.sqrt(0.5), 0.0),
    (-math.sqrt(0.5), math.sqrt(0.5), 0.0),
    (0.0, -1.0, 0.0),
)
PLANE_ANCHORS: tuple[tuple[float, float, float], ...] = tuple(
    (math.cos(k * math.pi / 4) * PLANE_SIZE / 4, 0.0, math.sin(k * math.pi / 4) * PLANE_SIZE / 4)
    for k in range(8)
)

FALLBACK_DETAIL = 2
FALLBACK_COLOR = (0.5, 0.5, 0.5)
FALLBACK_SEA_COLOR = (0.0, 0.0, 0.6)
FALLBACK_SEA_RADIUS = 0.99

UP = np.array([0.0, 1.0, 0.0])

Point = tuple[float, float, float]


@dataclass(frozen=True)
class VertexInfo:
    """Everything computed once per unique vertex position."""

    height: float
    scatter: Point
    sea_height: float
    sea_morph_height: float


class VertexCache:
    """Per-request memo of vertex records keyed by rounded position.

    Vertices shared by several faces round to the same key, so they are
    computed once and displaced identically.
    """

    def __init__(self, precision: int = 5):
        self.precision = precision
        self._records: dict[tuple[float, float, float], VertexInfo] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._records)

    def key(self, point: Sequence[float]) -> tuple[float, float, float]:
        p = self.precision
        # Adding 0.0 folds -0.0 into 0.0
        return (
            round(float(point[0]), p) + 0.0,
            round(float(point[1]), p) + 0.0,
            round(float(point[2]), p) + 0.0,
        )

    def get_or_compute(
        self, point: Sequence[float], compute: Callable[[Sequence[float]], VertexInfo]
    ) -> VertexInfo:
        """Return the cached record for a point, computing it on first use."""
        key = self.key(point)
        record = self._records.get(key)
        if record is None:
            self.misses += 1
            record = compute(point)
            self._records[key] = record
        else:
            self.hits += 1
        return record


@dataclass
class MeshBuffers:
    """Flat-shaded, non-indexed triangle buffers, each (N, 3) float32."""

    positions: NDArray[np.float32]
    colors: NDArray[np.float32]
    normals: NDArray[np.float32]

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def face_count(self) -> int:
        return len(self.positions) // 3


@dataclass
class OceanBuffers(MeshBuffers):
    """Ocean shell buffers plus the tide morph target."""

    morph_positions: NDArray[np.float32]
    morph_normals: NDArray[np.float32]


@dataclass
class GenerationResult:
    """Output of one mesh generation."""

    terrain: MeshBuffers
    ocean: OceanBuffers
    vegetation: dict[str, NDArray[np.float32]]
    shape: str = "sphere"
    detail: int = 0
    vertex_info: list[VertexInfo] = field(default_factory=list)
    is_fallback: bool = False

    @property
    def face_count(self) -> int:
        return self.terrain.face_count

    @property
    def vegetation_count(self) -> int:
        return sum(len(points) for points in self.vegetation.values())


def _per_vertex(face_values: NDArray[np.float64]) -> NDArray[np.float32]:
    return np.repeat(face_values, 3, axis=0).astype(np.float32)


def _as_points(points: list[Point]) -> NDArray[np.float32]:
    return np.array(points, dtype=np.float32).reshape(-1, 3)


class MeshGenerator:
    """Generates one planet mesh from a set of options."""

    def __init__(self, options: GenerationOptions):
        self.options = options
        self.is_plane = options.shape == "plane"
        self.biome = Biome(options.biome, seed=options.seed)
        self.rng = np.random.default_rng(options.seed)
        self.cache = VertexCache(options.cache_precision)
        self._scatter: NoiseField | None = None

    def generate(self) -> GenerationResult:
        """Run all generation stages.

        Returns:
            GenerationResult with terrain, ocean and vegetation.
        """
        opts = self.options
        base = base_mesh(opts.shape, opts.detail)
        faces = len(base) // 3

        logger.info(
            f"Generating {opts.shape} mesh at detail {opts.detail} "
            f"({faces:,} faces) with seed {opts.seed}"
        )

        side = self._face_side_length(base)
        self._scatter = self._make_scatter_field(side)
        face_area = face_area_total(opts.shape) / faces

        logger.info("Pass 1: Displacing vertices...")
        surface, positions, ocean, morph, infos = self._displace(base)
        logger.info(
            f"Computed {len(self.cache):,} unique vertices "
            f"({self.cache.hits:,} cache hits)"
        )

        mids = surface.reshape(-1, 3, 3).mean(axis=1)
        if not self.is_plane:
            mids /= np.linalg.norm(mids, axis=1, keepdims=True)
        ups = np.broadcast_to(UP, mids.shape) if self.is_plane else mids

        normals = self._normals(positions, ups)
        steepness = np.arccos(np.clip(np.abs(np.sum(normals * ups, axis=1)), 0.0, 1.0))

        logger.info("Shading faces and placing vegetation...")
        colors, sea_colors, placements = self._shade_and_place(
            mids, infos, steepness, face_area
        )
        self._backfill(placements)
        placed = sum(len(points) for points in placements.values())
        logger.info(f"Placed {placed} vegetation items")

        logger.info("Pass 2: Applying vegetation footprints...")
        if self._apply_ground(surface, infos, positions, colors):
            normals = self._normals(positions, ups)

        if not (np.all(np.isfinite(positions)) and np.all(np.isfinite(ocean))):
            raise GenerationError("Displacement produced non-finite vertex positions")

        terrain = MeshBuffers(
            positions=positions.astype(np.float32),
            colors=_per_vertex(colors),
            normals=_per_vertex(normals),
        )
        ocean_buffers = OceanBuffers(
            positions=ocean.astype(np.float32),
            colors=_per_vertex(sea_colors),
            normals=_per_vertex(self._normals(ocean, ups)),
            morph_positions=morph.astype(np.float32),
            morph_normals=_per_vertex(self._normals(morph, ups)),
        )
        return GenerationResult(
            terrain=terrain,
            ocean=ocean_buffers,
            vegetation={name: _as_points(points) for name, points in placements.items()},
            shape=opts.shape,
            detail=opts.detail,
            vertex_info=infos,
        )

    def _face_side_length(self, base: NDArray[np.float64]) -> float:
        if self.is_plane:
            return PLANE_SIZE / max(1, self.options.detail)
        return float(np.linalg.norm(base[1] - base[0]))

    def _make_scatter_field(self, side: float) -> NoiseField | None:
        amount = self.options.scatter * side
        if amount <= 0:
            return None
        config = NoiseConfig(min=-amount / 2, max=amount / 2, scale=SCATTER_NOISE_SCALE)
        return NoiseField(config, seed=self.options.seed + SCATTER_SEED_OFFSET)

    def _scatter_offset(self, point: Sequence[float]) -> Point:
        if self._scatter is None:
            return (0.0, 0.0, 0.0)
        x, y, z = (float(c) for c in point)
        near, far = SCATTER_AXIS_OFFSETS
        return (
            self._scatter.sample((x, y, z)),
            self._scatter.sample((y + near, z - near, x + near)),
            self._scatter.sample((z - far, x + far, y - far)),
        )

    def _surface_point(self, point: Sequence[float], scatter: Point) -> NDArray[np.float64]:
        """Scattered, un-elevated position of a base vertex."""
        moved = np.asarray(point, dtype=np.float64) + scatter
        if self.is_plane:
            moved[1] = 0.0
            return moved
        return moved / np.linalg.norm(moved)

    def _elevate(self, surface: NDArray[np.float64], height: float) -> NDArray[np.float64]:
        if self.is_plane:
            return np.array([surface[0], height, surface[2]])
        return surface * (1.0 + height)

    def _compute_vertex(self, point: Sequence[float]) -> VertexInfo:
        scatter = self._scatter_offset(point)
        surface = self._surface_point(point, scatter)
        return VertexInfo(
            height=self.biome.height_at(surface),
            scatter=scatter,
            sea_height=self.biome.sea_height_at(surface),
            sea_morph_height=self.biome.sea_height_at(surface + SEA_MORPH_OFFSET),
        )

    def _displace(self, base: NDArray[np.float64]) -> tuple[
        NDArray[np.float64],
        NDArray[np.float64],
        NDArray[np.float64],
        NDArray[np.float64],
        list[VertexInfo],
    ]:
        """Compute surface, terrain, ocean and morph positions per vertex."""
        surface = np.empty_like(base)
        positions = np.empty_like(base)
        ocean = np.empty_like(base)
        morph = np.empty_like(base)
        infos: list[VertexInfo] = []

        for index, point in enumerate(base):
            info = self.cache.get_or_compute(point, self._compute_vertex)
            infos.append(info)
            point_surface = self._surface_point(point, info.scatter)
            surface[index] = point_surface
            positions[index] = self._elevate(point_surface, info.height)
            ocean[index] = self._elevate(point_surface, info.sea_height)
            morph[index] = self._elevate(point_surface, info.sea_morph_height)

        return surface, positions, ocean, morph, infos

    def _normals(self, positions: NDArray[np.float64], ups: NDArray[np.float64]) -> NDArray[np.float64]:
        """Face normals, falling back to the up vector for degenerate faces."""
        normals = face_normals(positions.reshape(-1, 3, 3))
        degenerate = ~np.any(normals, axis=1)
        if np.any(degenerate):
            normals[degenerate] = ups[degenerate]
        return normals

    def _shade_and_place(
        self,
        mids: NDArray[np.float64],
        infos: list[VertexInfo],
        steepness: NDArray[np.float64],
        face_area: float,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64], dict[str, list[Point]]]:
        biome = self.biome
        faces = len(mids)
        colors = np.empty((faces, 3))
        sea_colors = np.empty((faces, 3))
        placements: dict[str, list[Point]] = {rule.name: [] for rule in biome.rules}

        for face in range(faces):
            mid = mids[face]
            face_steepness = float(steepness[face])
            heights = infos[3 * face].height + infos[3 * face + 1].height + infos[3 * face + 2].height
            normalized = biome.normalize_height(heights / 3.0)

            colors[face] = biome.color_at(mid, normalized, face_steepness)
            sea_colors[face] = biome.sea_color_at(mid, normalized)

            if not biome.rules:
                continue
            mid_height = biome.normalized_height_at(mid)
            for rule in biome.rules:
                if biome.try_place_vegetation(
                    rule, mid, mid_height, face_steepness, face_area, self.rng
                ):
                    placements[rule.name].append((float(mid[0]), float(mid[1]), float(mid[2])))

        return colors, sea_colors, placements

    def _backfill(self, placements: dict[str, list[Point]]) -> None:
        """Give sparse rules a few items at fixed anchor points."""
        minimum = self.options.minimum_placements
        if minimum <= 0:
            return

        anchors = PLANE_ANCHORS if self.is_plane else SPHERE_ANCHORS
        for index, rule in enumerate(self.biome.rules):
            if rule.density <= 0:
                continue
            placed = placements[rule.name]
            missing = min(minimum - len(placed), len(anchors))
            for k in range(missing):
                anchor = anchors[(index + k) % len(anchors)]
                self.biome.add_vegetation(rule, anchor)
                placed.append(anchor)
            if missing > 0:
                logger.debug(f"Backfilled {missing} '{rule.name}' items")

    def _apply_ground(
        self,
        surface: NDArray[np.float64],
        infos: list[VertexInfo],
        positions: NDArray[np.float64],
        colors: NDArray[np.float64],
    ) -> bool:
        """Raise and recolor faces under vegetation footprints.

        Returns:
            True if any face changed.
        """
        changed = 0
        for face in range(len(colors)):
            start = 3 * face
            corners = surface[start:start + 3]
            effect = self.biome.ground_effect(corners, tuple(colors[face]))
            if effect is None:
                continue
            for k in range(3):
                height = infos[start + k].height + effect.raises[k]
                positions[start + k] = self._elevate(corners[k], height)
            colors[face] = effect.color
            changed += 1

        if changed:
            logger.info(f"Reshaped {changed:,} faces under vegetation")
        return changed > 0


def generate_mesh(options: GenerationOptions | dict[str, Any] | None = None) -> GenerationResult:
    """Generate a planet mesh.

    Args:
        options: Generation options or a dictionary of them.

    Returns:
        GenerationResult with terrain, ocean and vegetation.
    """
    if not isinstance(options, GenerationOptions):
        options = GenerationOptions.model_validate(options or {})
    return MeshGenerator(options).generate()


def fallback_mesh(detail: int = FALLBACK_DETAIL) -> GenerationResult:
    """A plain, undisplaced sphere used when generation fails.

    Args:
        detail: Subdivision level of the sphere.

    Returns:
        GenerationResult with neutral colors and no vegetation.
    """
    detail = max(0, detail)
    positions = icosphere(detail)
    normals = _per_vertex(face_normals(positions.reshape(-1, 3, 3)))
    ocean_positions = (positions * FALLBACK_SEA_RADIUS).astype(np.float32)
    sea_colors = np.tile(np.array(FALLBACK_SEA_COLOR, dtype=np.float32), (len(positions), 1))

    return GenerationResult(
        terrain=MeshBuffers(
            positions=positions.astype(np.float32),
            colors=np.tile(np.array(FALLBACK_COLOR, dtype=np.float32), (len(positions), 1)),
            normals=normals,
        ),
        ocean=OceanBuffers(
            positions=ocean_positions,
            colors=sea_colors,
            normals=normals.copy(),
            morph_positions=ocean_positions.copy(),
            morph_normals=normals.copy(),
        ),
        vegetation={},
        shape="sphere",
        detail=detail,
        is_fallback=True,
    )
