"""
Geometry Normalization Steps
============================
The individual steps applied to a freshly decoded VertexBuffer before it is
handed to the renderer.

Why is this file needed?
------------------------
Raw assets come in arbitrary units and arbitrary positions. A scan in
millimetres placed at (5000, 200, 80) must show up centred and at the same
on-screen size as a unit cube. These functions make that happen:

1. compute_bounding_volume: axis-aligned box of the vertices.
2. auto_fit_scale: uniform scale so the largest box side equals a target size.
3. recenter: moves the box center to the origin.
4. classify_topology: point cloud or surface, from connectivity.
5. synthesize_normals: smooth vertex normals for surfaces without shading data.

Every step is a plain function so it can be tested and reused on its own;
model/pipeline.py strings them together.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Union

import numpy as np

from modelpreview.config import DEFAULT_TARGET_SIZE
from modelpreview.model.exceptions import NormalizationStepError
from modelpreview.model.geometry import BoundingVolume, RenderMode, VertexBuffer

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class RecenterStrategy(Enum):
    """How positions are shifted. Both strategies give identical results."""
    AUTO = "auto"
    BULK = "bulk"
    PER_VERTEX = "per_vertex"


# --- 1. BOUNDING VOLUME ---

def compute_bounding_volume(buffer: VertexBuffer) -> BoundingVolume:
    """
    Compute the axis-aligned bounding box of the buffer positions.

    Args:
        buffer: Any vertex buffer, including one with zero vertices.

    Returns:
        The bounding volume. An empty buffer yields BoundingVolume.empty().

    Raises:
        NormalizationStepError: If positions are not (N, 3) or contain NaN/inf.
    """
    positions = buffer.positions
    if positions.ndim != 2 or positions.shape[1] != 3:
        raise NormalizationStepError(
            "bounding_volume", f"positions must have shape (N, 3), got {positions.shape}"
        )

    if positions.shape[0] == 0:
        logger.debug("Empty vertex buffer, returning empty bounding volume.")
        return BoundingVolume.empty()

    if not np.all(np.isfinite(positions)):
        raise NormalizationStepError("bounding_volume", "positions contain non-finite values")

    return BoundingVolume(min=positions.min(axis=0), max=positions.max(axis=0))


# --- 2. AUTO-FIT SCALE ---

def auto_fit_scale(
    size: Union[BoundingVolume, npt.ArrayLike],
    target_size: float = DEFAULT_TARGET_SIZE
) -> float:
    """
    Uniform scale factor that makes the largest extent equal to target_size.

    Args:
        size: Bounding box size (sx, sy, sz) or the BoundingVolume itself.
        target_size: Desired largest extent in scene units.

    Returns:
        target_size / max(size) if that is positive, otherwise 1.0.
    """
    if target_size <= 0:
        raise ValueError(f"target_size must be positive, got {target_size}")

    if isinstance(size, BoundingVolume):
        size = size.size

    dims = np.asarray(size, dtype=np.float64).reshape(-1)
    if dims.size == 0:
        return 1.0

    max_dim = float(np.max(dims))
    # Coincident vertices or an empty buffer: keep identity scale
    if not np.isfinite(max_dim) or max_dim <= 0.0:
        return 1.0

    return target_size / max_dim


def effective_scale(auto_scale: float, user_scale: float = 1.0) -> float:
    """Combine the derived auto-fit scale with the user's display scale."""
    return auto_scale * user_scale


# --- 3. RECENTER ---

def _resolve_strategy(positions: npt.NDArray[np.float64], strategy: RecenterStrategy) -> RecenterStrategy:
    if strategy is not RecenterStrategy.AUTO:
        return strategy
    if positions.dtype == np.float64 and positions.flags.c_contiguous and positions.flags.writeable:
        return RecenterStrategy.BULK
    return RecenterStrategy.PER_VERTEX


def recenter(
    buffer: VertexBuffer,
    center: npt.ArrayLike,
    strategy: RecenterStrategy = RecenterStrategy.AUTO,
    inplace: bool = False
) -> VertexBuffer:
    """
    Shift all positions by -center.

    Args:
        buffer: The buffer to shift.
        center: Point that should end up at the origin.
        strategy: BULK uses one array operation, PER_VERTEX an explicit loop.
            AUTO picks BULK whenever the positions array supports it.
        inplace: Mutate buffer.positions instead of returning a new buffer.

    Returns:
        The recentered buffer. Colors, indices and normals are shared, not copied.
    """
    center = np.asarray(center, dtype=np.float64).reshape(-1)
    if center.shape != (3,) or not np.all(np.isfinite(center)):
        raise NormalizationStepError("recenter", f"invalid center {center}")

    if inplace:
        target = buffer
    else:
        target = VertexBuffer(
            positions=buffer.positions.copy(),
            colors=buffer.colors,
            indices=buffer.indices,
            normals=buffer.normals,
        )

    positions = target.positions
    if positions.ndim != 2 or positions.shape[1] != 3:
        raise NormalizationStepError("recenter", f"positions must have shape (N, 3), got {positions.shape}")
    if positions.shape[0] == 0:
        return target

    resolved = _resolve_strategy(positions, strategy)
    if resolved is RecenterStrategy.BULK:
        positions -= center
    else:
        cx, cy, cz = center
        for i in range(positions.shape[0]):
            positions[i, 0] = positions[i, 0] - cx
            positions[i, 1] = positions[i, 1] - cy
            positions[i, 2] = positions[i, 2] - cz

    logger.debug(f"Recentered {positions.shape[0]} vertices by {-center} ({resolved.value}).")
    return target


# --- 4. TOPOLOGY ---

def classify_topology(buffer: VertexBuffer) -> RenderMode:
    """SURFACE if the buffer has any triangle indices, POINT_CLOUD otherwise."""
    if buffer.has_indices:
        return RenderMode.SURFACE
    return RenderMode.POINT_CLOUD


# --- 5. NORMALS ---

def compute_vertex_normals(
    positions: npt.NDArray[np.float64],
    triangles: npt.NDArray[np.int64]
) -> npt.NDArray[np.float64]:
    """
    Smooth per-vertex normals from triangle connectivity.

    Each vertex accumulates the (area-weighted) face normal of every triangle
    that references it; the sum is then normalized. Vertices not used by any
    non-degenerate triangle get a zero normal.

    Args:
        positions: (N, 3) vertex coordinates.
        triangles: (M, 3) vertex indices, all in [0, N).

    Returns:
        (N, 3) array of unit (or zero) normals.
    """
    v0 = positions[triangles[:, 0]]
    v1 = positions[triangles[:, 1]]
    v2 = positions[triangles[:, 2]]

    # Cross product length is twice the triangle area -> area weighting for free
    face_normals = np.cross(v1 - v0, v2 - v0)

    normals = np.zeros_like(positions, dtype=np.float64)
    for k in range(3):
        np.add.at(normals, triangles[:, k], face_normals)

    lengths = np.linalg.norm(normals, axis=1)
    valid = lengths > 0.0
    normals[valid] /= lengths[valid][:, None]
    return normals


def synthesize_normals(buffer: VertexBuffer, inplace: bool = False) -> VertexBuffer:
    """
    Populate per-vertex normals when the buffer has connectivity but no normals.

    No-op (returns the same buffer object) when normals already exist or when
    there are no indices; point clouds are drawn unlit.

    Raises:
        NormalizationStepError: If indices are malformed or out of range.
    """
    if buffer.has_normals or not buffer.has_indices:
        return buffer

    if not buffer.indices_valid():
        raise NormalizationStepError(
            "normals",
            f"indices shape {buffer.indices.shape} invalid for {buffer.vertex_count} vertices",
        )

    normals = compute_vertex_normals(buffer.positions, buffer.indices)
    logger.debug(f"Synthesized {normals.shape[0]} vertex normals from {buffer.triangle_count} triangles.")

    if inplace:
        buffer.normals = normals
        return buffer

    return VertexBuffer(
        positions=buffer.positions,
        colors=buffer.colors,
        indices=buffer.indices,
        normals=normals,
    )
