"""Base meshes: subdivided icosahedron and flat grid.

All meshes are non-indexed: every face owns three consecutive vertices,
so a mesh of F faces is an (F * 3, 3) position array.
"""

import math
from functools import lru_cache
from typing import Literal

import numpy as np
from numpy.typing import NDArray

Shape = Literal["sphere", "plane"]

PLANE_SIZE = 3.0

_T = (1.0 + math.sqrt(5.0)) / 2.0

ICOSAHEDRON_VERTICES = np.array(
    [
        [-1, _T, 0], [1, _T, 0], [-1, -_T, 0], [1, -_T, 0],
        [0, -1, _T], [0, 1, _T], [0, -1, -_T], [0, 1, -_T],
        [_T, 0, -1], [_T, 0, 1], [-_T, 0, -1], [-_T, 0, 1],
    ],
    dtype=np.float64,
)

# Counter-clockwise seen from outside
ICOSAHEDRON_FACES = np.array(
    [
        [0, 11, 5], [0, 5, 1], [0, 1, 7], [0, 7, 10], [0, 10, 11],
        [1, 5, 9], [5, 11, 4], [11, 10, 2], [10, 7, 6], [7, 1, 8],
        [3, 9, 4], [3, 4, 2], [3, 2, 6], [3, 6, 8], [3, 8, 9],
        [4, 9, 5], [2, 4, 11], [6, 2, 10], [8, 6, 7], [9, 8, 1],
    ],
    dtype=np.intp,
)


def face_count(shape: Shape, detail: int) -> int:
    """Number of faces the base mesh of a shape has at a detail level."""
    if shape == "plane":
        segments = max(1, detail)
        return 2 * segments * segments
    return 20 * (max(0, detail) + 1) ** 2


def base_mesh(shape: Shape, detail: int) -> NDArray[np.float64]:
    """Build the base mesh for a shape."""
    if shape == "plane":
        return plane(detail)
    return icosphere(detail)


@lru_cache(maxsize=8)
def _subdivision_weights(detail: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Barycentric weights of every sub-triangle corner.

    Returns:
        (weight_b, weight_c) arrays of shape (n, 3), where corner position
        is ``a + weight_b * (b - a) + weight_c * (c - a)``.
    """
    cols = detail + 1
    corners: list[tuple[tuple[int, int], ...]] = []
    for i in range(cols):
        for j in range(2 * (cols - i) - 1):
            k = j // 2
            if j % 2 == 0:
                corners.append(((i, k + 1), (i + 1, k), (i, k)))
            else:
                corners.append(((i, k + 1), (i + 1, k + 1), (i + 1, k)))

    grid = np.array(corners, dtype=np.float64) / cols
    return grid[..., 1], grid[..., 0]


def icosphere(detail: int, radius: float = 1.0) -> NDArray[np.float64]:
    """Subdivided icosahedron projected onto a sphere.

    Args:
        detail: Subdivision level; each icosahedron face is split into
            (detail + 1)^2 triangles.
        radius: Sphere radius.

    Returns:
        (F * 3, 3) non-indexed vertex positions.
    """
    detail = max(0, detail)
    weight_b, weight_c = _subdivision_weights(detail)
    weight_a = 1.0 - weight_b - weight_c

    corners = ICOSAHEDRON_VERTICES[ICOSAHEDRON_FACES]  # (20, 3, 3)
    a = corners[:, None, None, 0, :]
    b = corners[:, None, None, 1, :]
    c = corners[:, None, None, 2, :]
    points = (
        weight_a[None, :, :, None] * a
        + weight_b[None, :, :, None] * b
        + weight_c[None, :, :, None] * c
    ).reshape(-1, 3)

    lengths = np.linalg.norm(points, axis=1, keepdims=True)
    return points / lengths * radius


def plane(detail: int, size: float = PLANE_SIZE) -> NDArray[np.float64]:
    """Square grid in the XZ plane, centered on the origin, facing +Y.

    Args:
        detail: Segments per side (at least 1).
        size: Side length.

    Returns:
        (F * 3, 3) non-indexed vertex positions with y = 0.
    """
    segments = max(1, detail)
    step = size / segments
    half = size / 2.0

    coords = np.arange(segments + 1, dtype=np.float64) * step - half
    # Grid row iy runs along +Z from -half
    grid = np.zeros((segments + 1, segments + 1, 3), dtype=np.float64)
    grid[:, :, 0] = coords[None, :]
    grid[:, :, 2] = coords[:, None]

    a = grid[:-1, :-1]
    b = grid[1:, :-1]
    c = grid[1:, 1:]
    d = grid[:-1, 1:]
    faces = np.stack([np.stack([a, b, d], axis=2), np.stack([b, c, d], axis=2)], axis=2)
    return faces.reshape(-1, 3)


def face_normals(triangles: NDArray[np.float64]) -> NDArray[np.float64]:
    """Unit normals of each triangle.

    Args:
        triangles: (F, 3, 3) array of face corner positions.

    Returns:
        (F, 3) normals; degenerate faces get a zero vector.
    """
    cross = np.cross(triangles[:, 1] - triangles[:, 0], triangles[:, 2] - triangles[:, 0])
    lengths = np.linalg.norm(cross, axis=1, keepdims=True)
    return np.divide(cross, lengths, out=np.zeros_like(cross), where=lengths > 0)


def face_area_total(shape: Shape) -> float:
    """Surface area of the undisplaced base shape."""
    if shape == "plane":
        return PLANE_SIZE * PLANE_SIZE
    return 4.0 * math.pi
