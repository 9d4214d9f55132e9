import numpy as np
import pytest

from modelpreview.model.geometry import VertexBuffer

# Unit cube [0, 1]^3, triangles wound counter-clockwise seen from outside
CUBE_POSITIONS = np.array([
    [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
    [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
], dtype=np.float64)

CUBE_TRIANGLES = np.array([
    [0, 2, 1], [0, 3, 2],  # bottom (-z)
    [4, 5, 6], [4, 6, 7],  # top (+z)
    [0, 1, 5], [0, 5, 4],  # front (-y)
    [3, 7, 6], [3, 6, 2],  # back (+y)
    [0, 4, 7], [0, 7, 3],  # left (-x)
    [1, 2, 6], [1, 6, 5],  # right (+x)
], dtype=np.int64)


@pytest.fixture
def unit_cube() -> VertexBuffer:
    return VertexBuffer(positions=CUBE_POSITIONS.copy(), indices=CUBE_TRIANGLES.copy())


@pytest.fixture
def colored_cloud() -> VertexBuffer:
    rng = np.random.default_rng(42)
    positions = rng.uniform(low=[-3.0, 10.0, 100.0], high=[5.0, 12.0, 101.0], size=(500, 3))
    colors = rng.uniform(0.0, 1.0, size=(500, 3))
    return VertexBuffer(positions=positions, colors=colors)


@pytest.fixture
def single_point() -> VertexBuffer:
    return VertexBuffer(positions=[[5.0, 5.0, 5.0]])
