import numpy as np
import pytest

from modelpreview.model.geometry import RenderMode
from modelpreview.model.pipeline import GeometryNormalizationPipeline
from modelpreview.model.procedural import torus_knot


def test_torus_knot_shapes():
    knot = torus_knot(tubular_segments=16, radial_segments=4)
    assert knot.positions.shape == (17 * 5, 3)
    assert knot.normals.shape == knot.positions.shape
    assert knot.indices.shape == (2 * 16 * 4, 3)
    assert knot.validate() == []


def test_torus_knot_normals_are_unit():
    knot = torus_knot()
    np.testing.assert_allclose(np.linalg.norm(knot.normals, axis=1), 1.0)


def test_torus_knot_stays_within_radius():
    knot = torus_knot(radius=1.0, tube=0.1)
    # Curve radius is at most 1.5 * radius / 2 * 2, plus the tube
    assert np.abs(knot.positions).max() <= 1.5 + 0.1 + 1e-9


def test_torus_knot_rejects_too_few_segments():
    with pytest.raises(ValueError):
        torus_knot(tubular_segments=2)


def test_torus_knot_keeps_its_normals_through_the_pipeline():
    knot = torus_knot(tubular_segments=32, radial_segments=8)
    result = GeometryNormalizationPipeline().normalize(knot)
    assert result.render_mode is RenderMode.SURFACE
    np.testing.assert_array_equal(result.buffer.normals, knot.normals)
    assert result.bounds.max_dimension * result.scale_factor == pytest.approx(2.0)
