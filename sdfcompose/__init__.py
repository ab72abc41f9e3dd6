from .core import (
    ShapeKind, BlendOp, TextureKind, Material, SDFNode,
    NODE_CAPACITY, CHILD_CAPACITY, DEFAULT_SHAPE_PARAMS, DEFAULT_BLEND_FACTOR,
)
from .transforms import X, Y, Z, identity, translation, scaling, rotation, compose, trs
from .scene import SDFScene, SceneBuilder, build
from .evaluator import (
    DistanceEvaluator, evaluate_scene, evaluate_group, primitive_distance,
    raymarch, intersect_box, MAX_DIST, MIN_DIST, MAX_ITERS,
)
from .hierarchy import Hierarchy, HierarchyNode, HierarchySource, HierarchyChange, ChangeKind
from .gpu import NODE_DTYPE, NODE_WITH_MATERIAL_DTYPE, SceneBuffers, pack_nodes, export_buffers
from .mesh import DEFAULT_BOUNDS
from .watch import ScriptHierarchySource
