import numpy as np
import pytest

from modelpreview.model.exceptions import NormalizationStepError
from modelpreview.model.geometry import BoundingVolume, RenderMode, VertexBuffer
from modelpreview.model.normalization import (
    RecenterStrategy,
    auto_fit_scale,
    classify_topology,
    compute_bounding_volume,
    compute_vertex_normals,
    effective_scale,
    recenter,
    synthesize_normals,
)


# --- bounding volume ---

def test_bounding_volume_of_cube(unit_cube):
    bounds = compute_bounding_volume(unit_cube)
    np.testing.assert_array_equal(bounds.min, [0, 0, 0])
    np.testing.assert_array_equal(bounds.max, [1, 1, 1])
    np.testing.assert_allclose(bounds.center, [0.5, 0.5, 0.5])
    assert not bounds.is_degenerate


def test_bounding_volume_of_empty_buffer_does_not_raise():
    bounds = compute_bounding_volume(VertexBuffer(positions=np.empty((0, 3))))
    assert bounds.is_empty
    assert bounds.is_degenerate


def test_bounding_volume_rejects_non_finite_positions():
    buffer = VertexBuffer(positions=[[0, 0, 0], [np.nan, 1, 1]])
    with pytest.raises(NormalizationStepError):
        compute_bounding_volume(buffer)


def test_bounding_volume_rejects_bad_shape():
    with pytest.raises(NormalizationStepError):
        compute_bounding_volume(VertexBuffer(positions=np.zeros((3, 2))))


# --- auto-fit scale ---

@pytest.mark.parametrize("size", [
    (1.0, 1.0, 1.0),
    (4.0, 2.0, 1.0),
    (0.001, 0.0005, 0.0),
    (0.0, 1234.5, 3.0),
    (1e6, 1.0, 1.0),
])
def test_auto_fit_scale_hits_target(size):
    scale = auto_fit_scale(size, target_size=2.0)
    assert scale == 2.0 / max(size)
    assert max(size) * scale == pytest.approx(2.0)


@pytest.mark.parametrize("size", [(0.0, 0.0, 0.0), (-0.0, 0.0, 0.0), ()])
def test_auto_fit_scale_identity_for_zero_extent(size):
    assert auto_fit_scale(size) == 1.0


def test_auto_fit_scale_accepts_bounding_volume():
    bounds = BoundingVolume(min=np.array([0.0, 0.0, 0.0]), max=np.array([0.5, 0.25, 0.1]))
    assert auto_fit_scale(bounds, target_size=3.0) == pytest.approx(6.0)


def test_auto_fit_scale_identity_for_empty_volume():
    assert auto_fit_scale(BoundingVolume.empty()) == 1.0


def test_auto_fit_scale_rejects_non_positive_target():
    with pytest.raises(ValueError):
        auto_fit_scale((1.0, 1.0, 1.0), target_size=0.0)


def test_effective_scale_composes_multiplicatively():
    assert effective_scale(0.5, 3.0) == pytest.approx(1.5)
    assert effective_scale(2.0) == 2.0


# --- recenter ---

def test_recenter_returns_new_buffer_by_default(colored_cloud):
    original = colored_cloud.positions.copy()
    center = compute_bounding_volume(colored_cloud).center

    moved = recenter(colored_cloud, center)

    assert moved is not colored_cloud
    np.testing.assert_array_equal(colored_cloud.positions, original)
    np.testing.assert_allclose(moved.positions, original - center)
    # Other attributes are untouched and shared
    assert moved.colors is colored_cloud.colors


def test_recenter_inplace(unit_cube):
    indices_before = unit_cube.indices.copy()
    result = recenter(unit_cube, [0.5, 0.5, 0.5], inplace=True)
    assert result is unit_cube
    assert unit_cube.positions.min() == -0.5
    assert unit_cube.positions.max() == 0.5
    np.testing.assert_array_equal(unit_cube.indices, indices_before)


def test_recenter_strategies_are_equivalent(colored_cloud):
    center = compute_bounding_volume(colored_cloud).center
    bulk = recenter(colored_cloud, center, strategy=RecenterStrategy.BULK)
    loop = recenter(colored_cloud, center, strategy=RecenterStrategy.PER_VERTEX)
    np.testing.assert_array_equal(bulk.positions, loop.positions)


def test_recenter_auto_falls_back_to_loop_for_strided_positions():
    # Positions viewed out of a wider record array are not contiguous
    records = np.arange(24, dtype=np.float64).reshape(4, 6)
    buffer = VertexBuffer(positions=records[:, :3])
    assert not buffer.positions.flags.c_contiguous

    recenter(buffer, [1.0, 2.0, 3.0], inplace=True)

    expected = np.arange(24, dtype=np.float64).reshape(4, 6)[:, :3] - [1.0, 2.0, 3.0]
    np.testing.assert_array_equal(records[:, :3], expected)
    # The columns that are not positions are untouched
    np.testing.assert_array_equal(records[:, 3:], np.arange(24, dtype=np.float64).reshape(4, 6)[:, 3:])


def test_recenter_is_idempotent_under_remeasurement(colored_cloud):
    first = recenter(colored_cloud, compute_bounding_volume(colored_cloud).center)
    new_center = compute_bounding_volume(first).center
    np.testing.assert_allclose(new_center, [0.0, 0.0, 0.0], atol=1e-12)

    second = recenter(first, new_center)
    np.testing.assert_allclose(second.positions, first.positions, atol=1e-12)


def test_recenter_single_point(single_point):
    moved = recenter(single_point, compute_bounding_volume(single_point).center)
    np.testing.assert_array_equal(moved.positions, [[0.0, 0.0, 0.0]])


def test_recenter_empty_buffer():
    buffer = VertexBuffer(positions=np.empty((0, 3)))
    assert recenter(buffer, [0.0, 0.0, 0.0]).vertex_count == 0


def test_recenter_rejects_invalid_center(unit_cube):
    with pytest.raises(NormalizationStepError):
        recenter(unit_cube, [np.inf, 0.0, 0.0])
    with pytest.raises(NormalizationStepError):
        recenter(unit_cube, [1.0, 2.0])


# --- topology ---

def test_classify_surface(unit_cube):
    assert classify_topology(unit_cube) is RenderMode.SURFACE


def test_classify_point_cloud_without_indices(colored_cloud):
    assert classify_topology(colored_cloud) is RenderMode.POINT_CLOUD


def test_classify_point_cloud_with_empty_indices():
    buffer = VertexBuffer(positions=np.zeros((3, 3)), indices=np.empty((0, 3), dtype=np.int64))
    assert classify_topology(buffer) is RenderMode.POINT_CLOUD


# --- normals ---

def test_synthesize_normals_for_cube(unit_cube):
    result = synthesize_normals(unit_cube)

    assert result is not unit_cube
    assert unit_cube.normals is None
    assert result.normals.shape == (8, 3)
    np.testing.assert_allclose(np.linalg.norm(result.normals, axis=1), 1.0)

    # Outward facing: every normal points away from the cube center
    outward = result.positions - [0.5, 0.5, 0.5]
    assert np.all(np.einsum("ij,ij->i", result.normals, outward) > 0)

    # The corner shared by three faces with two triangles each is exactly diagonal
    np.testing.assert_allclose(result.normals[6], np.ones(3) / np.sqrt(3.0))


def test_synthesize_normals_inplace(unit_cube):
    result = synthesize_normals(unit_cube, inplace=True)
    assert result is unit_cube
    assert unit_cube.normals.shape == (8, 3)


def test_synthesize_normals_is_noop_when_present(unit_cube):
    normals = np.tile([0.0, 0.0, 1.0], (8, 1))
    unit_cube.normals = normals.copy()

    result = synthesize_normals(unit_cube)

    assert result is unit_cube
    np.testing.assert_array_equal(result.normals, normals)


def test_synthesize_normals_is_noop_for_point_cloud(colored_cloud):
    result = synthesize_normals(colored_cloud)
    assert result is colored_cloud
    assert result.normals is None


def test_synthesize_normals_rejects_out_of_range_indices():
    buffer = VertexBuffer(positions=np.zeros((3, 3)), indices=[[0, 1, 5]])
    with pytest.raises(NormalizationStepError):
        synthesize_normals(buffer)


def test_unreferenced_vertex_gets_zero_normal():
    positions = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [9, 9, 9]], dtype=np.float64)
    normals = compute_vertex_normals(positions, np.array([[0, 1, 2]]))
    np.testing.assert_allclose(normals[:3], [[0, 0, 1]] * 3)
    np.testing.assert_array_equal(normals[3], [0, 0, 0])


def test_normals_are_area_weighted():
    # Vertex 0 is shared by a large triangle facing +z and a small one facing +x
    positions = np.array([
        [0, 0, 0], [10, 0, 0], [0, 10, 0],
        [0, 1, 0], [0, 0, 1],
    ], dtype=np.float64)
    triangles = np.array([[0, 1, 2], [0, 3, 4]])
    normals = compute_vertex_normals(positions, triangles)
    assert normals[0, 2] > normals[0, 0] > 0
