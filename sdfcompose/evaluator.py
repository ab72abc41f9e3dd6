"""
CPU evaluation of a flattened SDFScene.

Every function here is pure: it reads a scene snapshot and a batch of
points, never mutates either and never raises on bad numbers. NaN and
infinities in the input, or a non-positive blend factor, come back as
non-finite distances.
"""
import numpy as np
from .core import ShapeKind, BlendOp, _coerce_enum

MAX_DIST = 100000.0
MIN_DIST = 1e-3
MAX_ITERS = 1024

_OCTAHEDRON_SCALE = 0.57735027


def _as_points(points):
    p = np.asarray(points, dtype=np.float64)
    if p.size == 0:
        return p.reshape(0, 3), False
    return np.atleast_2d(p), p.ndim == 1


def _length_xz(p):
    return np.sqrt(p[:, 0] * p[:, 0] + p[:, 2] * p[:, 2])


def _length2(x, y):
    return np.sqrt(x * x + y * y)


# --- Primitive distances (points are already in the primitive's frame) ---

def _sd_sphere(p, radius):
    # Squared pseudo-distance, not Euclidean
    return p[:, 0] * p[:, 0] + p[:, 1] * p[:, 1] + p[:, 2] * p[:, 2] - radius * radius

def _sd_box(p, size):
    q = np.abs(p) - size
    outside = np.linalg.norm(np.maximum(q, 0.0), axis=1)
    inside = np.minimum(np.maximum(q[:, 0], np.maximum(q[:, 1], q[:, 2])), 0.0)
    return outside + inside

def _sd_torus(p, major, minor):
    return _length2(_length_xz(p) - major, p[:, 1]) - minor

def _sd_cylinder(p, height, radius):
    dx = np.abs(_length_xz(p)) - radius
    dy = np.abs(p[:, 1]) - height
    return np.minimum(np.maximum(dx, dy), 0.0) + _length2(np.maximum(dx, 0.0), np.maximum(dy, 0.0))

def _sd_capsule(p, height, radius):
    half = height * 0.5
    q = p.copy()
    q[:, 1] -= np.clip(p[:, 1], -half, half)
    return np.linalg.norm(q, axis=1) - radius

def _sd_octahedron(p, size):
    a = np.abs(p)
    return (a[:, 0] + a[:, 1] + a[:, 2] - size) * _OCTAHEDRON_SCALE

def _sd_capped_cone(p, height, r1, r2):
    qx, qy = _length_xz(p), p[:, 1]
    k1x, k1y = r2, height
    k2x, k2y = r2 - r1, 2.0 * height
    ca_x = qx - np.minimum(qx, np.where(qy < 0.0, r1, r2))
    ca_y = np.abs(qy) - height
    t = np.clip(((k1x - qx) * k2x + (k1y - qy) * k2y) / (k2x * k2x + k2y * k2y), 0.0, 1.0)
    cb_x = qx - k1x + k2x * t
    cb_y = qy - k1y + k2y * t
    s = np.where((cb_x < 0.0) & (ca_y < 0.0), -1.0, 1.0)
    return s * np.sqrt(np.minimum(ca_x * ca_x + ca_y * ca_y, cb_x * cb_x + cb_y * cb_y))


def primitive_distance(local_points, shape_kind, shape_params):
    """
    Distance of points to one primitive, in the primitive's own frame.

    Args:
        local_points (np.ndarray): (N, 3) or (3,) points in the local frame.
        shape_kind (ShapeKind): The primitive type.
        shape_params (sequence): Four parameters; the 4th is roundness.

    Returns:
        np.ndarray: (N,) distances, or a scalar for a single point.
    """
    p, single = _as_points(local_points)
    x, y, z, roundness = (float(v) for v in shape_params)
    kind = _coerce_enum(ShapeKind, shape_kind)

    with np.errstate(all='ignore'):
        if kind == ShapeKind.SPHERE:
            d = _sd_sphere(p, x)
        elif kind == ShapeKind.BOX:
            d = _sd_box(p, x)
        elif kind == ShapeKind.TORUS:
            d = _sd_torus(p, x, y)
        elif kind == ShapeKind.CYLINDER:
            d = _sd_cylinder(p, y, x)
        elif kind == ShapeKind.CAPSULE:
            d = _sd_capsule(p, y, x)
        elif kind == ShapeKind.OCTAHEDRON:
            d = _sd_octahedron(p, x)
        elif kind == ShapeKind.CONE:
            d = _sd_capped_cone(p, x, y, z)
        else:
            # A compound header has no geometry of its own
            d = np.zeros(len(p))

        if roundness > 0.0:
            d = d - roundness

    return d[0] if single else d


# --- Blend operators: each returns (distance, blend weight) ---

def smooth_add(a, b, k):
    """Quadratic smooth minimum. The weight only drives color mixing."""
    with np.errstate(all='ignore'):
        h = np.maximum(k - np.abs(a - b), 0.0) / k
        m = h * h * 0.5
        s = m * k * 0.5
        a_first = a < b
        return np.where(a_first, a - s, b - s), np.where(a_first, m, m - 1.0)

def smooth_subtract(a, b, k):
    with np.errstate(all='ignore'):
        h = np.clip(0.5 - 0.5 * (a + b) / k, 0.0, 1.0)
        d = a + (-b - a) * h + k * h * (1.0 - h)
    return d, np.zeros_like(d)

def intersect(a, b):
    d = np.maximum(a, b)
    return d, np.zeros_like(d)

def color_blend(a, b, k):
    """Leaves the distance untouched and only reports the color weight."""
    _, weight = smooth_add(a, b, k)
    return np.array(a, dtype=np.float64, copy=True), weight


def blend(op, a, b, k):
    """Applies blend operator `op` to accumulator `a` and new distance `b`."""
    op = _coerce_enum(BlendOp, op)
    if op == BlendOp.ADD:
        return smooth_add(a, b, k)
    if op == BlendOp.SUBTRACT:
        return smooth_subtract(a, b, k)
    if op == BlendOp.INTERSECT:
        return intersect(a, b)
    return color_blend(a, b, k)


# --- Folds ---

def _fold_group(nodes, start, end, p):
    acc = np.full(len(p), MAX_DIST)
    for i in range(start, end):
        node = nodes[i]
        d = primitive_distance(node.to_local(p), node.shape_kind, node.shape_params)
        # The first member always unions into the sentinel
        op = BlendOp.ADD if i == start else node.blend_op
        acc, _ = blend(op, acc, d, node.blend_factor)
    return acc


def evaluate_group(nodes, points, start: int = 0, end: int = None):
    """
    Folds the primitive distances of nodes[start:end] into one distance.
    """
    p, single = _as_points(points)
    if end is None:
        end = len(nodes)
    with np.errstate(all='ignore'):
        acc = _fold_group(nodes, start, end, p)
    return acc[0] if single else acc


def evaluate_scene(scene, points):
    """
    Signed distance of the whole scene at `points`.

    Each group is folded on its own, then the group results are folded
    together using the group header's blend operator and factor.
    Negative is inside, zero the surface, positive outside.
    """
    p, single = _as_points(points)
    nodes = scene.nodes
    acc = np.full(len(p), MAX_DIST)
    with np.errstate(all='ignore'):
        for index, (start, end) in enumerate(scene.groups()):
            header = nodes[start]
            first = start + 1 if header.is_compound else start
            d = _fold_group(nodes, first, end, p)
            op = BlendOp.ADD if index == 0 else header.blend_op
            acc, _ = blend(op, acc, d, header.blend_factor)
    return acc[0] if single else acc


def is_inside(scene, points):
    return evaluate_scene(scene, points) <= 0.0


def estimate_normals(field, points, eps: float = 1e-4):
    """Normalized gradient of a distance callable by central differences."""
    p, single = _as_points(points)
    offsets = np.eye(3) * eps
    with np.errstate(all='ignore'):
        grad = np.stack([field(p + o) - field(p - o) for o in offsets], axis=-1)
        norms = np.linalg.norm(grad, axis=-1, keepdims=True)
        normals = grad / np.where(norms == 0, 1, norms)
    return normals[0] if single else normals


def intersect_box(origins, directions, lower=(-0.5, -0.5, -0.5), upper=(0.5, 0.5, 0.5)):
    """
    Slab test of rays against an axis-aligned box.

    Returns:
        tuple: (hit, t_near, t_far) arrays. A ray hits when t_far > max(t_near, 0).
    """
    o, single = _as_points(origins)
    d, _ = _as_points(directions)
    with np.errstate(all='ignore'):
        inv = 1.0 / d
        t_bot = inv * (np.asarray(lower, dtype=np.float64) - o)
        t_top = inv * (np.asarray(upper, dtype=np.float64) - o)
        t_near = np.max(np.minimum(t_top, t_bot), axis=1)
        t_far = np.min(np.maximum(t_top, t_bot), axis=1)
        hit = t_far > np.maximum(t_near, 0.0)
    if single:
        return hit[0], t_near[0], t_far[0]
    return hit, t_near, t_far


def raymarch(scene, origins, directions, max_iters: int = MAX_ITERS, min_dist: float = MIN_DIST,
             max_dist: float = MAX_DIST, bounds=None):
    """
    Sphere-traces rays through the scene.

    Args:
        scene (SDFScene): The snapshot to trace.
        origins (np.ndarray): (N, 3) ray origins, or one (3,) origin.
        directions (np.ndarray): (N, 3) normalized directions, or one (3,) direction.
        max_iters (int): Maximum marching steps per ray.
        min_dist (float): Distance below which a ray counts as a hit.
        max_dist (float): Distance along the ray after which it counts as a miss.
        bounds (tuple, optional): ((x0, y0, z0), (x1, y1, z1)). Rays start where they
                                  enter this box; rays missing it are misses.

    Returns:
        np.ndarray: Hit distance along each ray, -1.0 for misses.
    """
    o, single = _as_points(origins)
    d, _ = _as_points(directions)
    d = np.broadcast_to(d, o.shape)
    t = np.zeros(len(o))
    result = np.full(len(o), -1.0)
    active = np.ones(len(o), dtype=bool)

    if bounds is not None:
        hit, t_near, _ = intersect_box(o, d, bounds[0], bounds[1])
        active &= hit
        t = np.where(hit, np.maximum(t_near, 0.0), 0.0)

    with np.errstate(all='ignore'):
        for _ in range(max_iters):
            if not np.any(active):
                break
            idx = np.nonzero(active)[0]
            dist = evaluate_scene(scene, o[idx] + t[idx, None] * d[idx])
            done = dist < min_dist
            result[idx[done]] = t[idx[done]]
            t[idx] += dist
            escaped = ~done & ((t[idx] > max_dist) | ~np.isfinite(dist))
            active[idx[done | escaped]] = False

    return result[0] if single else result


class DistanceEvaluator:
    """
    Callable distance field over a scene, for mesh extraction and sampling.

    `target` is either an SDFScene or a SceneBuilder. With a builder, each
    call picks up the snapshot published at that moment and uses it for the
    whole call.
    """
    def __init__(self, target):
        self.target = target

    @property
    def scene(self):
        return getattr(self.target, 'scene', self.target)

    def __call__(self, points):
        return evaluate_scene(self.scene, points)

    def is_inside(self, points):
        return is_inside(self.scene, points)

    def normals(self, points, eps: float = 1e-4):
        scene = self.scene
        return estimate_normals(lambda p: evaluate_scene(scene, p), points, eps)

    def raymarch(self, origins, directions, **kwargs):
        return raymarch(self.scene, origins, directions, **kwargs)

    def estimate_bounds(self, resolution: int = 64, search_bounds=((-2, -2, -2), (2, 2, 2)), padding: float = 0.1, verbose: bool = True):
        from .mesh import estimate_bounds
        scene = self.scene
        return estimate_bounds(lambda p: evaluate_scene(scene, p), resolution, search_bounds, padding, verbose)

    def save(self, path, bounds=None, resolution: int = 64, verbose: bool = True):
        """Extracts a mesh with marching cubes and saves it (.stl or .obj)."""
        from .mesh import save
        scene = self.scene
        save(lambda p: evaluate_scene(scene, p), path, bounds=bounds, resolution=resolution, verbose=verbose)
