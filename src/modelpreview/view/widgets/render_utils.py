"""
Rendering Utilities
Helper functions converting normalized geometry into PyVista data.
"""
from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
import pyvista as pv

from modelpreview.model.geometry import RenderMode, VertexBuffer
from modelpreview.model.pipeline import NormalizationResult

logger = logging.getLogger(__name__)

COLOR_ARRAY = "RGB"


class RenderUtils:
    @staticmethod
    def triangles_to_faces(indices: npt.NDArray[np.int64]) -> npt.NDArray[np.int64]:
        """(M, 3) triangles -> flat VTK cell array [3, i0, i1, i2, 3, ...]."""
        tris = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
        counts = np.full((tris.shape[0], 1), 3, dtype=np.int64)
        return np.hstack([counts, tris]).ravel()

    @staticmethod
    def to_polydata(result: NormalizationResult) -> pv.PolyData:
        """
        Build a display mesh for the result.

        Points are copied, so the display mesh can be deformed without
        touching the result buffer.
        """
        buffer = result.buffer
        points = np.array(buffer.positions, dtype=np.float64, copy=True)

        if result.render_mode is RenderMode.POINT_CLOUD:
            # PolyData(points) creates one vertex cell per point
            pd = pv.PolyData(points)
        elif result.render_mode is RenderMode.SURFACE:
            pd = pv.PolyData(points, RenderUtils.triangles_to_faces(buffer.indices))
            if buffer.normals_valid():
                pd.point_data.active_normals = np.array(buffer.normals, dtype=np.float64, copy=True)
        else:
            raise ValueError(f"Unhandled render mode: {result.render_mode}")

        if result.has_vertex_colors:
            pd.point_data[COLOR_ARRAY] = RenderUtils.colors_to_uint8(buffer.colors)

        return pd

    @staticmethod
    def colors_to_uint8(colors: npt.NDArray[np.float64]) -> npt.NDArray[np.uint8]:
        """[0, 1] float RGB(A) -> uint8 RGB, alpha dropped."""
        rgb = np.clip(np.asarray(colors)[:, :3], 0.0, 1.0)
        return np.round(rgb * 255.0).astype(np.uint8)

    @staticmethod
    def supports_distortion(result: NormalizationResult, is_demo: bool) -> bool:
        """Only the demo surface has the distorting material; loaded files keep their shape."""
        return is_demo and result.render_mode is RenderMode.SURFACE

    @staticmethod
    def displacement_directions(buffer: VertexBuffer) -> npt.NDArray[np.float64]:
        """Unit directions used by the distortion effect: normals if present, else radial."""
        if buffer.normals_valid():
            return np.asarray(buffer.normals, dtype=np.float64)

        radial = np.array(buffer.positions, dtype=np.float64, copy=True)
        lengths = np.linalg.norm(radial, axis=1, keepdims=True)
        lengths[lengths == 0.0] = 1.0
        return radial / lengths

    @staticmethod
    def distort_points(
        base_points: npt.NDArray[np.float64],
        directions: npt.NDArray[np.float64],
        magnitude: float,
        time: float,
        speed: float
    ) -> npt.NDArray[np.float64]:
        """
        Wobble the points along their directions.

        The offset is a sum of two travelling waves, bounded by
        0.25 * magnitude so the shape stays recognisable.

        Args:
            base_points: (N, 3) undeformed points.
            directions: (N, 3) unit displacement directions.
            magnitude: Distortion strength (0 disables the effect).
            time: Animation time in seconds.
            speed: Animation speed multiplier.

        Returns:
            (N, 3) new array; inputs are left untouched.
        """
        if magnitude == 0.0 or base_points.size == 0:
            return np.array(base_points, copy=True)

        phase = time * speed
        x, y, z = base_points[:, 0], base_points[:, 1], base_points[:, 2]
        wave = 0.5 * np.sin(3.0 * x + 2.0 * y + phase) + 0.5 * np.sin(2.0 * z - 3.0 * y + 1.3 * phase)
        offset = 0.25 * magnitude * wave
        return base_points + directions * offset[:, None]
