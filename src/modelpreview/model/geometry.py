"""
Geometry Data Types
===================
Plain containers for decoded vertex data and the values derived from it.

Why is this file needed?
------------------------
1. Single shape: Every loader (PLY, OBJ, procedural) hands the pipeline the
   same VertexBuffer, so normalization never cares where data came from.
2. Explicit optionals: colors, normals and indices are Optional fields. Code
   must check presence before using them.

Classes:
    VertexBuffer: Raw decoded geometry.
    BoundingVolume: Axis-aligned bounding box with derived center/size.
    RenderMode: Point cloud vs. connected surface.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


class RenderMode(Enum):
    """Which draw primitive the presentation layer must use."""
    POINT_CLOUD = "point_cloud"
    SURFACE = "surface"


def _as_optional_array(values, dtype) -> Optional[npt.NDArray]:
    if values is None:
        return None
    return np.asarray(values, dtype=dtype)


@dataclass
class VertexBuffer:
    """
    Raw decoded geometry.

    Attributes:
        positions: (N, 3) vertex coordinates.
        colors: Optional (N, 3) or (N, 4) per-vertex colors in [0, 1].
        indices: Optional (M, 3) triangle vertex indices.
        normals: Optional (N, 3) per-vertex normals.

    The constructor only converts inputs to numpy arrays. It does not enforce
    the length invariants; use validate() to list violations.
    """
    positions: npt.NDArray[np.float64]
    colors: Optional[npt.NDArray[np.float64]] = None
    indices: Optional[npt.NDArray[np.int64]] = None
    normals: Optional[npt.NDArray[np.float64]] = None

    def __post_init__(self) -> None:
        positions = np.asarray(self.positions, dtype=np.float64)
        if positions.size == 0:
            positions = positions.reshape(0, 3)
        elif positions.ndim == 1 and positions.size % 3 == 0:
            positions = positions.reshape(-1, 3)
        self.positions = positions
        self.colors = _as_optional_array(self.colors, np.float64)
        self.normals = _as_optional_array(self.normals, np.float64)

        indices = _as_optional_array(self.indices, np.int64)
        # Flat index lists are common in decoders; group them into triangles
        if indices is not None and indices.ndim == 1 and indices.size % 3 == 0:
            indices = indices.reshape(-1, 3)
        self.indices = indices

    # --- PROPERTIES ---

    @property
    def vertex_count(self) -> int:
        if self.positions.ndim != 2:
            return 0
        return int(self.positions.shape[0])

    @property
    def has_colors(self) -> bool:
        return self.colors is not None and self.colors.size > 0

    @property
    def has_normals(self) -> bool:
        return self.normals is not None and self.normals.size > 0

    @property
    def has_indices(self) -> bool:
        return self.indices is not None and self.indices.size > 0

    @property
    def triangle_count(self) -> int:
        if not self.has_indices:
            return 0
        return int(self.indices.size // 3)

    # --- CHECKS ---

    def colors_valid(self) -> bool:
        """True if colors are present and match the vertex count."""
        if not self.has_colors:
            return False
        c = self.colors
        return c.ndim == 2 and c.shape[0] == self.vertex_count and c.shape[1] in (3, 4)

    def normals_valid(self) -> bool:
        """True if normals are present and match the vertex count."""
        if not self.has_normals:
            return False
        return self.normals.shape == (self.vertex_count, 3)

    def indices_valid(self) -> bool:
        """True if indices are present, shaped as triangles and in range."""
        if not self.has_indices:
            return False
        idx = self.indices
        if idx.ndim != 2 or idx.shape[1] != 3:
            return False
        return bool(idx.min() >= 0 and idx.max() < self.vertex_count)

    def validate(self) -> list[str]:
        """
        Check the buffer invariants.

        Returns:
            A list of human-readable problems. Empty if the buffer is well-formed.
        """
        problems: list[str] = []

        if self.positions.ndim != 2 or self.positions.shape[1] != 3:
            problems.append(f"positions must have shape (N, 3), got {self.positions.shape}")
            # Nothing else can be checked against an unknown vertex count
            return problems

        n = self.vertex_count

        if self.has_colors and not self.colors_valid():
            problems.append(f"colors shape {self.colors.shape} does not match {n} vertices")

        if self.has_normals and not self.normals_valid():
            problems.append(f"normals shape {self.normals.shape} does not match {n} vertices")

        if self.has_indices:
            idx = self.indices
            if idx.ndim != 2 or idx.shape[1] != 3:
                problems.append(f"indices must have shape (M, 3), got {idx.shape}")
            elif idx.min() < 0 or idx.max() >= n:
                problems.append(
                    f"indices out of range [0, {n}): min={int(idx.min())}, max={int(idx.max())}"
                )

        return problems

    def copy(self) -> VertexBuffer:
        """Deep copy of all arrays."""
        return VertexBuffer(
            positions=self.positions.copy(),
            colors=None if self.colors is None else self.colors.copy(),
            indices=None if self.indices is None else self.indices.copy(),
            normals=None if self.normals is None else self.normals.copy(),
        )


@dataclass(frozen=True, eq=False)
class BoundingVolume:
    """Axis-aligned bounding box."""
    min: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    max: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    is_empty: bool = False

    @classmethod
    def empty(cls) -> BoundingVolume:
        """Zero-size volume at the origin, used for buffers without vertices."""
        return cls(min=np.zeros(3), max=np.zeros(3), is_empty=True)

    @property
    def center(self) -> npt.NDArray[np.float64]:
        return (self.min + self.max) / 2.0

    @property
    def size(self) -> npt.NDArray[np.float64]:
        return np.maximum(self.max - self.min, 0.0)

    @property
    def max_dimension(self) -> float:
        return float(np.max(self.size))

    @property
    def is_degenerate(self) -> bool:
        """Flat, linear, single-point or empty input."""
        return self.is_empty or bool(np.any(self.size == 0.0))
