import numpy as np
import os
import time
import sys
from skimage import measure

# Volume sampled by the "generate mesh" action when no bounds are given
DEFAULT_BOUNDS = ((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))

# One binary STL facet: normal, three corners, attribute byte count
STL_FACET_DTYPE = np.dtype([
    ('normal', '<f4', (3,)),
    ('corners', '<f4', (3, 3)),
    ('attributes', '<u2'),
])

_STL_HEADER = b'sdfcompose binary STL'.ljust(80, b'\x00')


def _grid_points(axes):
    grids = np.meshgrid(*axes, indexing='ij')
    return np.stack(grids, axis=-1).reshape(-1, 3)


def _facet_normals(triangles):
    edges_a = triangles[:, 1] - triangles[:, 0]
    edges_b = triangles[:, 2] - triangles[:, 0]
    normals = np.cross(edges_a, edges_b)
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    return normals / np.where(lengths == 0, 1, lengths)


def write_stl(path, verts, faces):
    triangles = np.asarray(verts, dtype=np.float64)[faces]
    facets = np.zeros(len(triangles), dtype=STL_FACET_DTYPE)
    facets['corners'] = triangles
    facets['normal'] = _facet_normals(triangles)
    with open(path, 'wb') as fp:
        fp.write(_STL_HEADER)
        fp.write(np.uint32(len(facets)).astype('<u4').tobytes())
        fp.write(facets.tobytes())


def write_obj(path, verts, faces):
    with open(path, 'w') as fp:
        np.savetxt(fp, np.asarray(verts), fmt='v %.6f %.6f %.6f')
        np.savetxt(fp, np.asarray(faces) + 1, fmt='f %d %d %d')


_WRITERS = {
    '.stl': write_stl,
    '.obj': write_obj,
}


def _sanitize(distances):
    """Replaces non-finite samples so marching cubes always gets a valid volume."""
    finite = np.isfinite(distances)
    if finite.all():
        return distances
    fill = np.max(np.abs(distances[finite])) if finite.any() else 1.0
    out = np.where(np.isnan(distances), fill, distances)
    return np.clip(out, -fill, fill)


def sample_grid(field, bounds, resolution):
    """
    Evaluates `field` on a regular grid spanning `bounds`.

    Returns:
        tuple: (volume, axes) where volume has shape (rx, ry, rz).
    """
    if isinstance(resolution, int):
        resolution = (resolution, resolution, resolution)
    if min(resolution) < 2:
        raise ValueError(f"Grid resolution must be at least 2 per axis, got {resolution}.")
    lower, upper = bounds
    axes = [np.linspace(lower[i], upper[i], resolution[i]) for i in range(3)]
    distances = np.asarray(field(_grid_points(axes)), dtype=np.float64)
    return distances.reshape(*resolution), axes


def generate(field, bounds=DEFAULT_BOUNDS, resolution=64, verbose=True):
    """
    Extracts a triangle mesh from a distance callable with marching cubes.

    Args:
        field (callable): Maps an (N, 3) array of points to (N,) distances.
        bounds (tuple, optional): ((x0, y0, z0), (x1, y1, z1)) volume to mesh.
        resolution (int or tuple, optional): Samples per axis. Defaults to 64.
        verbose (bool, optional): Print progress information.

    Returns:
        tuple: (verts, faces) where verts is (N, 3) float and faces is (M, 3) int.
               Both are empty if no surface crosses the grid.
    """
    if bounds is None:
        bounds = DEFAULT_BOUNDS
    if verbose:
        print("INFO: Generating mesh...", file=sys.stderr)
        print(f"  - Bounds: {bounds}", file=sys.stderr)

    volume, axes = sample_grid(field, bounds, resolution)
    if verbose:
        print(f"  - Grid dimensions: {' x '.join(str(len(a)) for a in axes)} = {volume.size} points", file=sys.stderr)

    spacing = tuple(float(a[1] - a[0]) for a in axes)
    try:
        verts, faces, _, _ = measure.marching_cubes(_sanitize(volume), level=0.0, spacing=spacing)
    except (ValueError, RuntimeError):
        verts, faces = np.empty((0, 3)), np.empty((0, 3), dtype=int)

    if len(faces) == 0:
        if verbose:
            print("ERROR: Mesh generation failed. The surface may not intersect the specified bounds.", file=sys.stderr)
        return np.array([]), np.array([])
    return verts + np.asarray(bounds[0], dtype=float), faces


def save(field, path, bounds=DEFAULT_BOUNDS, resolution=64, verbose=True):
    """
    Generates a mesh from `field` and saves it to a .stl or .obj file.
    """
    started = time.time()
    path = str(path)
    writer = _WRITERS.get(os.path.splitext(path)[1].lower())
    if writer is None:
        print(f"ERROR: Unsupported file format '{path}'. Only .stl and .obj are supported.", file=sys.stderr)
        return

    verts, faces = generate(field, bounds, resolution, verbose)
    if len(faces) == 0:
        return

    if verbose:
        print(f"INFO: Saving to '{path}'...", file=sys.stderr)
    writer(path, verts, faces)
    if verbose:
        print(f"SUCCESS: Mesh with {len(faces)} triangles saved in {time.time() - started:.2f}s.", file=sys.stderr)


def estimate_bounds(field, resolution=64, search_bounds=((-2, -2, -2), (2, 2, 2)), padding=0.1, verbose=True):
    """
    Estimates the bounding box of a distance callable by sampling a grid.

    The box of all inside samples is grown by one grid step, then by
    `padding` times its size. Returns `search_bounds` unchanged when no
    inside sample is found.
    """
    if verbose:
        print(f"INFO: Estimating bounds with {resolution**3} samples...", file=sys.stderr)

    volume, axes = sample_grid(field, search_bounds, resolution)
    inside = np.argwhere(volume <= 1e-4)
    if len(inside) < 2:
        if verbose:
            print(f"WARNING: No object surface found within the search bounds {search_bounds}.", file=sys.stderr)
        return search_bounds

    step = np.array([a[1] - a[0] for a in axes])
    lower = np.array([axes[i][inside[:, i].min()] for i in range(3)]) - step
    upper = np.array([axes[i][inside[:, i].max()] for i in range(3)]) + step
    size = upper - lower
    size[size < 1e-6] = padding
    return tuple(lower - size * padding), tuple(upper + size * padding)
