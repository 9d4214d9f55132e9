"""
Procedural demo geometry.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from modelpreview.model.geometry import VertexBuffer

if TYPE_CHECKING:
    import numpy.typing as npt


def _knot_curve(u: npt.NDArray[np.float64], p: int, q: int, radius: float) -> npt.NDArray[np.float64]:
    """Points on the (p, q) torus knot curve for parameters u."""
    cu = np.cos(u)
    su = np.sin(u)
    qu_over_p = q / p * u
    cs = np.cos(qu_over_p)
    x = radius * (2.0 + cs) * 0.5 * cu
    y = radius * (2.0 + cs) * su * 0.5
    z = radius * np.sin(qu_over_p) * 0.5
    return np.column_stack((x, y, z))


def _normalize_rows(a: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    lengths = np.linalg.norm(a, axis=1, keepdims=True)
    lengths[lengths == 0.0] = 1.0
    return a / lengths


def torus_knot(
    radius: float = 0.6,
    tube: float = 0.2,
    tubular_segments: int = 128,
    radial_segments: int = 32,
    p: int = 2,
    q: int = 3
) -> VertexBuffer:
    """
    Triangulated tube around a (p, q) torus knot.

    Args:
        radius: Radius of the whole knot.
        tube: Radius of the tube.
        tubular_segments: Segments along the knot.
        radial_segments: Segments around the tube.
        p: Windings around the rotational axis of symmetry.
        q: Windings around the interior circle of the torus.

    Returns:
        Buffer with positions, triangle indices and analytic normals.
        The seam vertices are duplicated, as usual for UV-friendly meshes.
    """
    if tubular_segments < 3 or radial_segments < 3:
        raise ValueError("torus knot needs at least 3 tubular and 3 radial segments")

    u = np.arange(tubular_segments + 1) / tubular_segments * p * 2.0 * np.pi
    p1 = _knot_curve(u, p, q, radius)
    p2 = _knot_curve(u + 0.01, p, q, radius)

    # Frenet-like frame along the curve
    tangent = p2 - p1
    n = p2 + p1
    b = _normalize_rows(np.cross(tangent, n))
    n = _normalize_rows(np.cross(b, tangent))

    v = np.arange(radial_segments + 1) / radial_segments * 2.0 * np.pi
    cx = -tube * np.cos(v)
    cy = tube * np.sin(v)

    # (tubular + 1, radial + 1, 3)
    offsets = cx[None, :, None] * n[:, None, :] + cy[None, :, None] * b[:, None, :]
    positions = (p1[:, None, :] + offsets).reshape(-1, 3)
    normals = _normalize_rows(offsets.reshape(-1, 3))

    row = radial_segments + 1
    j, i = np.meshgrid(np.arange(1, tubular_segments + 1), np.arange(1, radial_segments + 1), indexing="ij")
    a = row * (j - 1) + (i - 1)
    bb = row * j + (i - 1)
    c = row * j + i
    d = row * (j - 1) + i
    indices = np.concatenate([
        np.stack((a, bb, d), axis=-1).reshape(-1, 3),
        np.stack((bb, c, d), axis=-1).reshape(-1, 3),
    ])

    return VertexBuffer(positions=positions, indices=indices, normals=normals)
