import pytest
import numpy as np
from types import SimpleNamespace
from sdfcompose import Hierarchy, ShapeKind, BlendOp, translation, build

# Dependency checks
try:
    import moderngl
    MODERNGL_AVAILABLE = True
except ImportError:
    MODERNGL_AVAILABLE = False

try:
    import watchdog
    WATCHDOG_AVAILABLE = True
except ImportError:
    WATCHDOG_AVAILABLE = False

requires_watchdog = pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="Requires watchdog.")


def sphere_distance(points, radius):
    """Reference squared pseudo-distance of a sphere at the origin."""
    p = np.asarray(points, dtype=np.float64)
    return p[:, 0] * p[:, 0] + p[:, 1] * p[:, 1] + p[:, 2] * p[:, 2] - radius * radius


def descriptor(shape_kind=ShapeKind.SPHERE, children=(), child_of_compound=False, **fields):
    """A bare descriptor exposing the fields build() reads, without any hierarchy checks."""
    return SimpleNamespace(
        shape_kind=shape_kind,
        shape_params=fields.get('shape_params', (0.3, 0.0, 0.0, 0.0)),
        blend_op=fields.get('blend_op', BlendOp.ADD),
        blend_factor=fields.get('blend_factor', 0.02),
        world_transform=fields.get('world_transform', np.eye(4)),
        material=fields.get('material'),
        children=tuple(children),
        is_child_of_compound=child_of_compound,
    )


@pytest.fixture
def hierarchy():
    return Hierarchy()


@pytest.fixture
def compound_hierarchy():
    """One compound with three children followed by two singletons."""
    h = Hierarchy()
    body = h.add(shape_kind=ShapeKind.COMPOUND, name='body')
    for x in (-0.2, 0.0, 0.2):
        h.add_child(body, shape_params=(0.1, 0, 0, 0), transform=translation((x, 0, 0)))
    h.add(shape_kind=ShapeKind.BOX, shape_params=(0.2, 0, 0, 0), transform=translation((1, 0, 0)))
    h.add(shape_params=(0.25, 0, 0, 0), transform=translation((0, 1, 0)))
    return h


@pytest.fixture
def unit_sphere_scene():
    """A single sphere of radius 0.5 at the origin."""
    h = Hierarchy()
    h.add(shape_params=(0.5, 0, 0, 0))
    scene, _ = build(h.children())
    return scene


@pytest.fixture
def box_scene():
    h = Hierarchy()
    h.add(shape_kind=ShapeKind.BOX, shape_params=(0.5, 0, 0, 0))
    scene, _ = build(h.children())
    return scene
