import numpy as np

# Cardinal axis constants
X, Y, Z = np.array([1, 0, 0]), np.array([0, 1, 0]), np.array([0, 0, 1])


def identity() -> np.ndarray:
    return np.eye(4)


def translation(offset) -> np.ndarray:
    """Returns a 4x4 matrix translating by `offset` (x, y, z)."""
    off = np.array(offset, dtype=float).reshape(-1)
    if off.shape != (3,):
        raise ValueError("Translation offset must have 3 components.")
    m = np.eye(4)
    m[:3, 3] = off
    return m


def scaling(factor) -> np.ndarray:
    """Returns a 4x4 scale matrix. A scalar scales uniformly."""
    if isinstance(factor, (int, float)):
        f = np.array([factor, factor, factor], dtype=float)
    else:
        f = np.array(factor, dtype=float).reshape(-1)
    if f.shape != (3,):
        raise ValueError("Scale factor must be a scalar or have 3 components.")
    if np.any(f == 0):
        raise ValueError("Scale factor cannot be zero on any axis.")
    m = np.eye(4)
    m[0, 0], m[1, 1], m[2, 2] = f
    return m


def rotation(axis, angle: float) -> np.ndarray:
    """
    Returns a 4x4 matrix rotating by `angle` radians around `axis`.

    Args:
        axis (tuple): The rotation axis. Does not need to be normalized.
        angle (float): The rotation angle in radians.
    """
    ax = np.array(axis, dtype=float)
    if np.linalg.norm(ax) == 0: raise ValueError("Rotation axis cannot be zero vector")
    ax /= np.linalg.norm(ax)

    c, s = np.cos(angle), np.sin(angle)
    kx, ky, kz = ax
    K = np.array([[0, -kz, ky], [kz, 0, -kx], [-ky, kx, 0]])
    m = np.eye(4)
    m[:3, :3] = np.eye(3) + s * K + (1 - c) * (K @ K)
    return m


def compose(*matrices) -> np.ndarray:
    """Multiplies matrices left to right; the last one is applied first."""
    result = np.eye(4)
    for m in matrices:
        result = result @ np.asarray(m, dtype=float)
    return result


def trs(translate=(0, 0, 0), axis=Y, angle: float = 0.0, scale=1.0) -> np.ndarray:
    """Builds a local-to-parent matrix: scale, then rotate, then translate."""
    return compose(translation(translate), rotation(axis, angle), scaling(scale))


def as_matrix(value) -> np.ndarray:
    """Validates and copies a 4x4 transform."""
    if value is None:
        return np.eye(4)
    m = np.array(value, dtype=float)
    if m.shape != (4, 4):
        raise ValueError(f"Transform must be a 4x4 matrix, got shape {m.shape}.")
    return m


def invert(matrix) -> np.ndarray:
    """Returns the world-to-local inverse of a local-to-world transform."""
    return np.linalg.inv(as_matrix(matrix))
