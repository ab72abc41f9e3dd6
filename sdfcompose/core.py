import numpy as np
from enum import IntEnum

# Flattening capacities used when none are passed to build()
NODE_CAPACITY = 128
CHILD_CAPACITY = 32

DEFAULT_SHAPE_PARAMS = (0.3, 0.0, 0.0, 0.0)
DEFAULT_BLEND_FACTOR = 0.02


class ShapeKind(IntEnum):
    """Primitive type codes, shared with the shader."""
    SPHERE = 0
    BOX = 1
    TORUS = 2
    CYLINDER = 3
    CAPSULE = 4
    OCTAHEDRON = 5
    CONE = 6
    COMPOUND = -1


class BlendOp(IntEnum):
    """How a node's distance is folded into the running accumulator."""
    ADD = 0
    SUBTRACT = 1
    INTERSECT = 2
    COLOR_BLEND = 3


class TextureKind(IntEnum):
    """Procedural texture selector carried in the material payload."""
    PLAIN = 0
    STRIPED_TRIPLANAR = 1
    POLKA_DOTS_TRIPLANAR = 2
    DIAMONDS_TRIPLANAR = 3
    WAVES_TRIPLANAR = 4
    PROCEDURAL_PATTERN_1 = 5
    WORLEY_SMOOTH_3D = 6
    WORLEY_CELLS_3D = 7
    FBM = 8
    PERLIN = 9


def _coerce_enum(enum_cls, value):
    """Accepts an enum member, its integer code or its name."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown {enum_cls.__name__} name: '{value}'")
    try:
        return enum_cls(int(value))
    except (TypeError, ValueError):
        raise ValueError(f"Unknown {enum_cls.__name__} value: {value!r}")


def _frozen_vector(values, size: int, name: str) -> np.ndarray:
    arr = np.array(values, dtype=np.float64).reshape(-1)
    if arr.shape != (size,):
        raise ValueError(f"'{name}' must have {size} components, got {arr.size}.")
    arr.setflags(write=False)
    return arr


def _color(values, name: str) -> np.ndarray:
    rgba = list(np.array(values, dtype=np.float64).reshape(-1))
    if len(rgba) == 3:
        rgba.append(1.0)
    return _frozen_vector(rgba, 4, name)


class _Frozen:
    """Value object whose fields are set once, in __init__."""
    __slots__ = ()

    def _init(self, **fields):
        for name, value in fields.items():
            object.__setattr__(self, name, value)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable; cannot set '{name}'.")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__} is immutable; cannot delete '{name}'.")


class Material(_Frozen):
    """
    Surface description carried alongside a node for the shader.

    The distance evaluator never looks at it; it only travels through
    flattening into the extended GPU record.
    """
    __slots__ = ('primary_color', 'secondary_color', 'emission_color', 'texture_kind',
                 'texture_params', 'smoothness', 'metallic')

    def __init__(self, primary_color=(1.0, 1.0, 1.0, 1.0), secondary_color=(0.0, 0.0, 0.0, 1.0),
                 emission_color=(0.0, 0.0, 0.0, 0.0), texture_kind=TextureKind.PLAIN,
                 texture_params=(1.0, 0.0, 0.0, 0.0), smoothness: float = 0.0, metallic: float = 0.0):
        """
        Args:
            primary_color (tuple): RGB or RGBA base color.
            secondary_color (tuple): RGB or RGBA color used by patterned textures.
            emission_color (tuple): RGB or RGBA emissive color.
            texture_kind (TextureKind, int or str): Procedural texture to apply.
            texture_params (tuple): Four texture parameters. `.x` is the texture
                                    scale, `.w` the triplanar normal blend strength.
            smoothness (float): Surface smoothness in [0, 1].
            metallic (float): Metalness in [0, 1].
        """
        if not 0.0 <= smoothness <= 1.0:
            raise ValueError(f"smoothness must be in [0, 1], got {smoothness}")
        if not 0.0 <= metallic <= 1.0:
            raise ValueError(f"metallic must be in [0, 1], got {metallic}")
        self._init(
            primary_color=_color(primary_color, 'primary_color'),
            secondary_color=_color(secondary_color, 'secondary_color'),
            emission_color=_color(emission_color, 'emission_color'),
            texture_kind=_coerce_enum(TextureKind, texture_kind),
            texture_params=_frozen_vector(texture_params, 4, 'texture_params'),
            smoothness=float(smoothness),
            metallic=float(metallic),
        )

    def _key(self):
        return (tuple(self.primary_color), tuple(self.secondary_color), tuple(self.emission_color),
                int(self.texture_kind), tuple(self.texture_params), self.smoothness, self.metallic)

    def __eq__(self, other):
        return isinstance(other, Material) and self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return f"Material(primary_color={tuple(self.primary_color)}, texture_kind={self.texture_kind.name})"


class SDFNode(_Frozen):
    """
    One flattened entry of a scene: a primitive or a compound group header.

    Nodes are values. Their arrays are read-only copies and a built scene
    never changes a node after placing it.
    """
    __slots__ = ('shape_kind', 'shape_params', 'blend_op', 'blend_factor', 'world_to_local',
                 'material', 'num_children')

    def __init__(self, shape_kind=ShapeKind.SPHERE, shape_params=DEFAULT_SHAPE_PARAMS,
                 blend_op=BlendOp.ADD, blend_factor: float = DEFAULT_BLEND_FACTOR,
                 world_to_local=None, material: Material = None, num_children: int = 0):
        kind = _coerce_enum(ShapeKind, shape_kind)
        if num_children and kind != ShapeKind.COMPOUND:
            raise ValueError("Only compound nodes can have children.")
        if world_to_local is None:
            world_to_local = np.eye(4)
        matrix = np.array(world_to_local, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"world_to_local must be a 4x4 matrix, got shape {matrix.shape}.")
        matrix.setflags(write=False)
        if material is not None and not isinstance(material, Material):
            raise TypeError(f"material must be a Material, got {type(material).__name__}.")
        self._init(
            shape_kind=kind,
            shape_params=_frozen_vector(shape_params, 4, 'shape_params'),
            blend_op=_coerce_enum(BlendOp, blend_op),
            blend_factor=float(blend_factor),
            world_to_local=matrix,
            material=material if material is not None else Material(),
            num_children=int(num_children),
        )

    @property
    def is_compound(self) -> bool:
        return self.shape_kind == ShapeKind.COMPOUND

    @property
    def roundness(self) -> float:
        return float(self.shape_params[3])

    def to_local(self, points: np.ndarray) -> np.ndarray:
        """Maps world-space points of shape (..., 3) into this node's frame."""
        m = self.world_to_local
        return points @ m[:3, :3].T + m[:3, 3]

    def _key(self):
        return (int(self.shape_kind), self.shape_params.tobytes(), int(self.blend_op), self.blend_factor,
                self.world_to_local.tobytes(), self.material, self.num_children)

    def __eq__(self, other):
        return isinstance(other, SDFNode) and self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return (f"SDFNode({self.shape_kind.name}, params={tuple(self.shape_params)}, "
                f"op={self.blend_op.name}, k={self.blend_factor})")
