from pathlib import Path

import numpy as np
import pytest
import pyvista as pv

from modelpreview.config import SAMPLE_MESH_PATH, SAMPLE_POINT_CLOUD_PATH
from modelpreview.controller.loader import DOWNLOAD_PROGRESS_SHARE, AssetLoader
from modelpreview.model.exceptions import AssetDecodeError
from modelpreview.model.geometry import RenderMode
from modelpreview.model.pipeline import GeometryNormalizationPipeline


def test_quad_is_triangulated():
    points = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=np.float64)
    quad = pv.PolyData(points, np.array([4, 0, 1, 2, 3]))

    buffer = AssetLoader.polydata_to_buffer(quad)

    assert buffer.vertex_count == 4
    assert buffer.indices.shape == (2, 3)
    assert buffer.indices_valid()
    assert buffer.colors is None


def test_point_cloud_colors_are_scaled_to_unit_range():
    cloud = pv.PolyData(np.array([[0, 0, 0], [1, 1, 1]], dtype=np.float64))
    cloud.point_data["RGB"] = np.array([[255, 0, 0], [0, 51, 255]], dtype=np.uint8)

    buffer = AssetLoader.polydata_to_buffer(cloud)

    assert not buffer.has_indices
    np.testing.assert_allclose(buffer.colors, [[1.0, 0.0, 0.0], [0.0, 0.2, 1.0]])


def test_dark_8bit_colors_are_scaled_by_dtype():
    cloud = pv.PolyData(np.array([[0, 0, 0], [1, 1, 1]], dtype=np.float64))
    cloud.point_data["RGB"] = np.array([[1, 1, 1], [0, 0, 0]], dtype=np.uint8)

    buffer = AssetLoader.polydata_to_buffer(cloud)

    np.testing.assert_allclose(buffer.colors, [[1 / 255] * 3, [0.0] * 3])


def test_float_colors_are_kept():
    cloud = pv.PolyData(np.array([[0, 0, 0], [1, 1, 1]], dtype=np.float64))
    cloud.point_data["RGB"] = np.array([[0.25, 0.5, 1.0], [0.0, 0.0, 0.0]], dtype=np.float32)

    buffer = AssetLoader.polydata_to_buffer(cloud)

    np.testing.assert_allclose(buffer.colors, [[0.25, 0.5, 1.0], [0.0, 0.0, 0.0]])


def test_sample_point_cloud():
    buffer = AssetLoader.load_vertex_buffer(SAMPLE_POINT_CLOUD_PATH)
    assert buffer.vertex_count == 8
    assert not buffer.has_indices
    assert buffer.colors_valid()
    np.testing.assert_allclose(buffer.colors[0, :3], [1.0, 0.0, 0.0])


def test_sample_point_cloud_end_to_end():
    result = GeometryNormalizationPipeline().load(AssetLoader.load_vertex_buffer(SAMPLE_POINT_CLOUD_PATH))
    assert result.render_mode is RenderMode.POINT_CLOUD
    assert result.has_vertex_colors
    assert result.scale_factor == pytest.approx(0.5)
    np.testing.assert_allclose(result.bounds.center, [12.0, 21.0, 30.5])
    np.testing.assert_allclose(result.buffer.positions.min(axis=0), [-2.0, -1.0, -0.5])


def test_sample_mesh_gets_normals():
    buffer = AssetLoader.load_vertex_buffer(SAMPLE_MESH_PATH)
    assert buffer.triangle_count == 4
    assert buffer.normals is None

    result = GeometryNormalizationPipeline().load(buffer)
    assert result.render_mode is RenderMode.SURFACE
    np.testing.assert_allclose(np.linalg.norm(result.buffer.normals, axis=1), 1.0)
    assert result.scale_factor == pytest.approx(2.0)


def test_file_url_is_resolved():
    path = AssetLoader.resolve_source(f"file://{SAMPLE_MESH_PATH}")
    assert path == SAMPLE_MESH_PATH


def test_missing_file_raises(tmp_path):
    missing = str(tmp_path / "nope.ply")
    with pytest.raises(AssetDecodeError) as excinfo:
        AssetLoader.load_vertex_buffer(missing)
    assert excinfo.value.source == missing


def test_empty_source_raises():
    with pytest.raises(AssetDecodeError):
        AssetLoader.resolve_source("")


def test_unreadable_file_raises(tmp_path):
    garbage = tmp_path / "garbage.ply"
    garbage.write_bytes(b"not a ply file at all")
    with pytest.raises(AssetDecodeError):
        AssetLoader.load_vertex_buffer(str(garbage))


def test_scene_offset_centers_bounds():
    scene = AssetLoader.load_scene(SAMPLE_MESH_PATH)
    np.testing.assert_allclose(scene.offset, [-0.5, -0.5, -0.5])


def test_cleanup_temp_files(tmp_path):
    temp = tmp_path / "download.ply"
    temp.write_text("x")
    AssetLoader._TEMP_FILES.append(str(temp))

    AssetLoader.cleanup_temp_files()

    assert not temp.exists()
    assert AssetLoader._TEMP_FILES == []


def test_download_reports_progress():
    url = Path(SAMPLE_POINT_CLOUD_PATH).as_uri()
    reported = []

    path = AssetLoader._download(url, reported.append)
    try:
        assert Path(path).read_bytes() == Path(SAMPLE_POINT_CLOUD_PATH).read_bytes()
        assert reported[-1] == DOWNLOAD_PROGRESS_SHARE
        assert reported == sorted(reported)
    finally:
        AssetLoader.cleanup_temp_files()
    assert not Path(path).exists()


def test_decode_finishes_at_full_progress():
    reported = []
    AssetLoader.load_vertex_buffer(SAMPLE_MESH_PATH, reported.append)
    assert reported == [100]
