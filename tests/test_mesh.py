import pytest
import os
import numpy as np
from sdfcompose import DistanceEvaluator
from sdfcompose.mesh import generate, save, sample_grid, estimate_bounds, _sanitize

@pytest.fixture
def field(unit_sphere_scene):
    return DistanceEvaluator(unit_sphere_scene)

def test_generate_sphere(field):
    verts, faces = generate(field, resolution=24, verbose=False)
    assert len(verts) > 0 and len(faces) > 0
    assert faces.shape[1] == 3
    assert np.allclose(np.linalg.norm(verts, axis=1), 0.5, atol=0.05)

def test_generate_no_surface(capsys):
    verts, faces = generate(lambda p: np.ones(len(p)), resolution=8)
    assert len(verts) == 0 and len(faces) == 0
    assert "ERROR:" in capsys.readouterr().err

def test_generate_with_non_finite_samples(field):
    def noisy(p):
        d = field(p)
        d[0] = np.nan
        d[-1] = np.inf
        return d
    verts, faces = generate(noisy, resolution=16, verbose=False)
    assert len(faces) > 0

def test_sanitize():
    out = _sanitize(np.array([np.nan, -np.inf, 0.5, -2.0]))
    assert np.array_equal(out, [2.0, -2.0, 0.5, -2.0])
    assert np.array_equal(_sanitize(np.array([np.nan])), [1.0])

def test_sample_grid(field):
    volume, axes = sample_grid(field, ((-1, -1, -1), (1, 1, 1)), (3, 4, 5))
    assert volume.shape == (3, 4, 5)
    assert volume[1, 0, 2] == pytest.approx(0.75)
    with pytest.raises(ValueError):
        sample_grid(field, ((-1, -1, -1), (1, 1, 1)), 1)

def test_save_stl(field, tmp_path):
    path = tmp_path / "sphere.stl"
    save(field, path, resolution=16, verbose=False)
    assert os.path.exists(path)
    with open(path, 'rb') as f:
        data = f.read()
    count = np.frombuffer(data[80:84], dtype='<u4')[0]
    assert count > 0
    assert len(data) == 84 + 50 * count

def test_save_obj(field, tmp_path):
    path = tmp_path / "sphere.obj"
    save(field, str(path), resolution=16, verbose=False)
    lines = path.read_text().splitlines()
    assert lines[0].startswith("v ")
    assert any(line.startswith("f ") for line in lines)

def test_save_unsupported_format(field, tmp_path, capsys):
    path = tmp_path / "sphere.ply"
    save(field, path, resolution=16)
    assert not os.path.exists(path)
    assert "ERROR:" in capsys.readouterr().err

def test_evaluator_save(field, tmp_path):
    path = tmp_path / "sphere.stl"
    field.save(path, resolution=16, verbose=False)
    assert os.path.exists(path)

def test_estimate_bounds_no_object_found():
    search_bounds = ((-2, -2, -2), (2, 2, 2))
    bounds = estimate_bounds(lambda p: np.ones(len(p)), resolution=8, search_bounds=search_bounds, verbose=False)
    assert bounds == search_bounds
