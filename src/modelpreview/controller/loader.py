"""
Asset Loader (PyVista Adapter)
==============================
Decodes model files into the data types the normalization pipeline consumes.

Why is this file needed?
------------------------
1. Decoding: File parsing is delegated entirely to pyvista.read (PLY, OBJ,
   STL, VTK, glTF ...). This module only converts the resulting PolyData into
   a VertexBuffer (points, triangles, colors, normals).
2. Sources: It resolves local paths, file:// URLs and http(s) URLs. Remote
   files are downloaded to temp files that are removed on exit.
3. Packaged scenes: glTF/GLB scenes are loaded whole and only centered
   (no auto-scale), matching how pre-authored scenes are presented.
"""
from __future__ import annotations

import logging
import os
import tempfile
import urllib.error
import urllib.request
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Union
from urllib.parse import unquote, urlparse

import numpy as np
import pyvista as pv

from modelpreview.model.exceptions import AssetDecodeError
from modelpreview.model.geometry import BoundingVolume, VertexBuffer

logger = logging.getLogger(__name__)

# Point-data array names used by common readers for per-vertex colors
COLOR_ARRAY_NAMES = ("RGBA", "RGB", "rgba", "rgb", "Colors", "colors")
NORMAL_ARRAY_NAMES = ("Normals", "normals")

DOWNLOAD_TIMEOUT_S = 30.0
DOWNLOAD_CHUNK_BYTES = 64 * 1024
# Share of the progress bar covered by the download; decoding fills the rest
DOWNLOAD_PROGRESS_SHARE = 90

# Receives the overall load progress in percent
ProgressCallback = Optional[Callable[[int], None]]


@dataclass
class SceneAsset:
    """A packaged scene loaded as one dataset."""
    dataset: pv.DataSet
    bounds: BoundingVolume

    @property
    def offset(self) -> np.ndarray:
        """Translation that puts the scene center at the origin."""
        return -self.bounds.center


class AssetLoader:
    # Track temporary files created by downloads
    _TEMP_FILES: list[str] = []

    @staticmethod
    def cleanup_temp_files() -> None:
        """Deletes all temporary files created during the session."""
        logger.info(f"Cleaning up {len(AssetLoader._TEMP_FILES)} downloaded asset files.")
        for temp_path in AssetLoader._TEMP_FILES:
            try:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                    logger.debug(f"Deleted temp file: {temp_path}")
            except OSError as e:
                logger.warning(f"Could not delete temp file '{temp_path}': {e}")
        AssetLoader._TEMP_FILES.clear()

    # --- SOURCES ---

    @staticmethod
    def resolve_source(source: str, progress: ProgressCallback = None) -> str:
        """
        Turn a source reference into a readable local path.

        Raises:
            AssetDecodeError: If the file does not exist or cannot be downloaded.
        """
        if not source:
            raise AssetDecodeError(str(source), "empty source reference")

        parsed = urlparse(source)
        if parsed.scheme in ("http", "https"):
            return AssetLoader._download(source, progress)

        if parsed.scheme == "file":
            path = unquote(parsed.path)
        else:
            path = os.path.expanduser(source)

        if not os.path.isfile(path):
            raise AssetDecodeError(source, "file not found")
        return path

    @staticmethod
    def _download(url: str, progress: ProgressCallback = None) -> str:
        suffix = os.path.splitext(urlparse(url).path)[1]
        temp_path = os.path.join(tempfile.gettempdir(), f"modelpreview_{uuid.uuid4().hex}{suffix}")
        logger.info(f"Downloading {url}")
        chunks: list[bytes] = []
        received = 0
        try:
            with urllib.request.urlopen(url, timeout=DOWNLOAD_TIMEOUT_S) as response:
                total = int(response.headers.get("Content-Length") or 0)
                while True:
                    chunk = response.read(DOWNLOAD_CHUNK_BYTES)
                    if not chunk:
                        break
                    chunks.append(chunk)
                    received += len(chunk)
                    # Without a Content-Length the bar stays indeterminate
                    if progress is not None and total > 0:
                        progress(min(DOWNLOAD_PROGRESS_SHARE, received * DOWNLOAD_PROGRESS_SHARE // total))
        except urllib.error.HTTPError as e:
            raise AssetDecodeError(url, f"HTTP {e.code}") from e
        except urllib.error.URLError as e:
            raise AssetDecodeError(url, str(e.reason)) from e

        with open(temp_path, "wb") as f:
            f.writelines(chunks)
        AssetLoader._TEMP_FILES.append(temp_path)
        logger.debug(f"Saved {received} bytes to {temp_path}")
        return temp_path

    @staticmethod
    def _read(source: str, progress: ProgressCallback = None) -> Union[pv.DataSet, pv.MultiBlock]:
        path = AssetLoader.resolve_source(source, progress)
        try:
            dataset = pv.read(path)
        except Exception as e:
            # Reader errors vary by format (ValueError, OSError, VTK errors)
            raise AssetDecodeError(source, str(e)) from e
        if dataset is None:
            raise AssetDecodeError(source, "reader returned no data")
        if progress is not None:
            progress(100)
        return dataset

    # --- RAW VERTEX DATA ---

    @staticmethod
    def load_vertex_buffer(source: str, progress: ProgressCallback = None) -> VertexBuffer:
        """
        Decode a point cloud or polygon file into a VertexBuffer.

        Args:
            source: Local path, file:// URL or http(s) URL.
            progress: Optional callback receiving the load progress in percent.

        Raises:
            AssetDecodeError: If the file cannot be read or holds no points.
        """
        dataset = AssetLoader._read(source, progress)
        buffer = AssetLoader.polydata_to_buffer(AssetLoader._as_polydata(dataset))
        if buffer.vertex_count == 0:
            raise AssetDecodeError(source, "no vertices")
        logger.info(
            f"Decoded '{source}': {buffer.vertex_count} vertices, {buffer.triangle_count} triangles, "
            f"colors={buffer.has_colors}, normals={buffer.has_normals}"
        )
        return buffer

    @staticmethod
    def _as_polydata(dataset: Union[pv.DataSet, pv.MultiBlock]) -> pv.PolyData:
        if isinstance(dataset, pv.MultiBlock):
            dataset = dataset.combine()
        if not isinstance(dataset, pv.PolyData):
            dataset = dataset.extract_surface()
        return dataset

    @staticmethod
    def polydata_to_buffer(mesh: pv.PolyData) -> VertexBuffer:
        """
        Convert PolyData into a VertexBuffer.

        Polygons are triangulated; vertex and line cells are ignored (every
        point is still a vertex of the buffer).
        """
        indices = None
        if mesh.n_points > 0 and mesh.faces.size > 0:
            if not mesh.is_all_triangles:
                mesh = mesh.triangulate()
            indices = mesh.faces.reshape(-1, 4)[:, 1:]

        return VertexBuffer(
            positions=np.asarray(mesh.points, dtype=np.float64),
            colors=AssetLoader._extract_colors(mesh),
            indices=indices,
            normals=AssetLoader._extract_point_array(mesh, NORMAL_ARRAY_NAMES),
        )

    @staticmethod
    def _extract_point_array(mesh: pv.PolyData, names: tuple[str, ...]):
        for name in names:
            if name in mesh.point_data:
                return np.asarray(mesh.point_data[name])
        return None

    @staticmethod
    def _extract_colors(mesh: pv.PolyData):
        raw = AssetLoader._extract_point_array(mesh, COLOR_ARRAY_NAMES)
        if raw is None:
            return None
        colors = raw.astype(np.float64)
        # Integer channels (uint8, uint16) -> [0, 1]; float colors are already normalized
        if np.issubdtype(raw.dtype, np.integer):
            colors /= float(np.iinfo(raw.dtype).max)
        return colors

    # --- PACKAGED SCENES ---

    @staticmethod
    def load_scene(source: str, progress: ProgressCallback = None) -> SceneAsset:
        """
        Load a packaged scene as a whole.

        Multi-block scenes are merged into one dataset. The returned offset
        centers the scene; no auto-scaling is applied.
        """
        dataset = AssetLoader._read(source, progress)
        if isinstance(dataset, pv.MultiBlock):
            dataset = dataset.combine()
        if dataset.n_points == 0:
            raise AssetDecodeError(source, "scene is empty")

        b = dataset.bounds
        bounds = BoundingVolume(min=np.array(b[0::2], dtype=np.float64), max=np.array(b[1::2], dtype=np.float64))
        logger.info(f"Loaded scene '{source}' with {dataset.n_points} points, center={bounds.center.tolist()}")
        return SceneAsset(dataset=dataset, bounds=bounds)
