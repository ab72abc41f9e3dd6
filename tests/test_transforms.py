import pytest
import numpy as np
from sdfcompose.transforms import (
    X, Y, Z, identity, translation, scaling, rotation, compose, trs, as_matrix, invert,
)

def apply(m, point):
    return (m @ np.append(point, 1.0))[:3]

def test_identity():
    assert np.array_equal(identity(), np.eye(4))

def test_translation():
    m = translation((1, 2, 3))
    assert np.allclose(apply(m, (0, 0, 0)), (1, 2, 3))
    with pytest.raises(ValueError):
        translation((1, 2))

def test_scaling():
    assert np.allclose(apply(scaling(2), (1, 1, 1)), (2, 2, 2))
    assert np.allclose(apply(scaling((1, 2, 3)), (1, 1, 1)), (1, 2, 3))
    with pytest.raises(ValueError):
        scaling((1, 0, 1))

def test_rotation():
    m = rotation(Z, np.pi / 2)
    assert np.allclose(apply(m, X), Y)
    assert np.allclose(apply(rotation((0, 0, 5), np.pi / 2), X), Y)
    with pytest.raises(ValueError):
        rotation((0, 0, 0), 1.0)

def test_compose_applies_last_first():
    m = compose(translation((1, 0, 0)), scaling(2))
    assert np.allclose(apply(m, (1, 0, 0)), (3, 0, 0))

def test_trs():
    m = trs(translate=(0, 0, 1), axis=Z, angle=np.pi / 2, scale=2)
    assert np.allclose(apply(m, (1, 0, 0)), (0, 2, 1))

def test_as_matrix():
    assert np.array_equal(as_matrix(None), np.eye(4))
    src = np.eye(4)
    copy = as_matrix(src)
    copy[0, 0] = 5
    assert src[0, 0] == 1
    with pytest.raises(ValueError):
        as_matrix(np.eye(3))

def test_invert():
    m = trs(translate=(1, 2, 3), axis=X, angle=0.3, scale=(1, 2, 4))
    assert np.allclose(invert(m) @ m, np.eye(4))
    with pytest.raises(np.linalg.LinAlgError):
        invert(np.zeros((4, 4)))
