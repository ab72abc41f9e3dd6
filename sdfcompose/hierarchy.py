import sys
from abc import ABC, abstractmethod
from enum import Enum
import numpy as np
from .core import (
    ShapeKind, BlendOp, Material, DEFAULT_SHAPE_PARAMS, DEFAULT_BLEND_FACTOR, _coerce_enum,
)
from .transforms import as_matrix, invert


class ChangeKind(Enum):
    ADDED = 'added'
    REMOVED = 'removed'
    REPARENTED = 'reparented'
    COMPOUND_TOGGLED = 'compound_toggled'
    MODIFIED = 'modified'
    RELOADED = 'reloaded'


class HierarchyChange:
    """Event handed to subscribers of a HierarchySource."""
    def __init__(self, kind: ChangeKind, node: 'HierarchyNode' = None):
        self.kind = kind
        self.node = node

    def __repr__(self):
        return f"HierarchyChange({self.kind.name}, {self.node!r})"


class HierarchyNode:
    """
    Authoring-side description of one scene node.

    Unlike SDFNode this is mutable; a Hierarchy edits it in place and tells
    its subscribers, who rebuild their snapshots from it.
    """

    _EDITABLE = ('shape_kind', 'shape_params', 'blend_op', 'blend_factor', 'transform', 'material', 'name')

    def __init__(self, shape_kind=ShapeKind.SPHERE, shape_params=DEFAULT_SHAPE_PARAMS,
                 blend_op=BlendOp.ADD, blend_factor: float = DEFAULT_BLEND_FACTOR,
                 transform=None, material: Material = None, name: str = None):
        """
        Args:
            shape_kind (ShapeKind, int or str): Primitive type, or COMPOUND for a group header.
            shape_params (tuple): Four shape parameters; the 4th is roundness.
            blend_op (BlendOp, int or str): How this node folds into its group or scene.
            blend_factor (float): Smoothing radius `k`. Must be positive to give finite results.
            transform (array, optional): 4x4 local-to-parent matrix. Defaults to identity.
            material (Material, optional): Shading payload. Defaults to a plain white material.
            name (str, optional): A label for debugging.
        """
        self._children = []
        self.parent = None
        self.name = name
        self.shape_kind = _coerce_enum(ShapeKind, shape_kind)
        self.shape_params = tuple(float(v) for v in np.array(shape_params, dtype=float).reshape(-1))
        if len(self.shape_params) != 4:
            raise ValueError("shape_params must have 4 components.")
        self.blend_op = _coerce_enum(BlendOp, blend_op)
        self.blend_factor = float(blend_factor)
        self.transform = as_matrix(transform)
        self.material = material if material is not None else Material()

    @property
    def children(self) -> tuple:
        return tuple(self._children)

    @property
    def is_compound(self) -> bool:
        return self.shape_kind == ShapeKind.COMPOUND

    @property
    def is_child_of_compound(self) -> bool:
        return self.parent is not None

    @property
    def world_transform(self) -> np.ndarray:
        """Local-to-world matrix, including the parent's transform."""
        if self.parent is None:
            return self.transform.copy()
        return self.parent.world_transform @ self.transform

    def _set(self, **fields):
        for key, value in fields.items():
            if key not in self._EDITABLE:
                raise TypeError(f"HierarchyNode has no editable field '{key}'")
            if key == 'shape_kind':
                value = _coerce_enum(ShapeKind, value)
            elif key == 'blend_op':
                value = _coerce_enum(BlendOp, value)
            elif key == 'shape_params':
                value = tuple(float(v) for v in np.array(value, dtype=float).reshape(-1))
                if len(value) != 4:
                    raise ValueError("shape_params must have 4 components.")
            elif key == 'blend_factor':
                value = float(value)
            elif key == 'transform':
                value = as_matrix(value)
            setattr(self, key, value)

    def __repr__(self):
        label = f" '{self.name}'" if self.name else ""
        return f"HierarchyNode({self.shape_kind.name}{label})"


class HierarchySource(ABC):
    """
    Supplies the ordered top-level nodes of one scene root and tells its
    own subscribers when they change.
    """
    def __init__(self):
        self._subscribers = []

    @abstractmethod
    def children(self) -> tuple:
        """Returns the ordered top-level HierarchyNode descriptors."""
        raise NotImplementedError

    def subscribe(self, callback):
        """Registers `callback(change)`; returns it so it can be unsubscribed."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback):
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify(self, kind: ChangeKind, node: HierarchyNode = None):
        change = HierarchyChange(kind, node)
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception as e:
                print(f"ERROR: Hierarchy subscriber {callback!r} failed on {kind.name}: {e}", file=sys.stderr)


class Hierarchy(HierarchySource):
    """An in-memory scene root with depth-one compound nesting."""
    def __init__(self, nodes=None):
        super().__init__()
        self._roots = []
        for node in nodes or ():
            self._attach(node, None)

    def children(self) -> tuple:
        return tuple(self._roots)

    def __iter__(self):
        return iter(self._roots)

    def __len__(self):
        return len(self._roots)

    def __contains__(self, node):
        return any(node is n or any(node is c for c in n._children) for n in self._roots)

    def _make(self, node, fields) -> HierarchyNode:
        if node is None:
            return HierarchyNode(**fields)
        if fields:
            raise TypeError("Pass either a node or node fields, not both.")
        if node in self:
            raise ValueError(f"{node!r} is already part of this hierarchy.")
        return node

    def _require(self, node):
        if node not in self:
            raise ValueError(f"{node!r} is not part of this hierarchy.")

    def _check_parent(self, parent, node):
        if parent is node:
            raise ValueError("A node cannot be its own parent.")
        if parent.is_child_of_compound:
            raise ValueError("Compound nesting is limited to one level; the parent is already a compound child.")
        if node._children:
            raise ValueError("A node with children cannot become a compound child.")

    def _attach(self, node, parent):
        if parent is None:
            node.parent = None
            self._roots.append(node)
            for child in list(node._children):
                self._demote(child)
            return
        self._check_parent(parent, node)
        if not parent.is_compound:
            parent.shape_kind = ShapeKind.COMPOUND
        self._demote(node)
        node.parent = parent
        parent._children.append(node)

    @staticmethod
    def _demote(node):
        # A compound child can never be a compound itself
        if node.shape_kind == ShapeKind.COMPOUND:
            node.shape_kind = ShapeKind.SPHERE

    def _detach(self, node):
        if node.parent is None:
            self._roots.remove(node)
        else:
            node.parent._children.remove(node)
            node.parent = None

    def add(self, node: HierarchyNode = None, **fields) -> HierarchyNode:
        """
        Appends a top-level node.

        Args:
            node (HierarchyNode, optional): An existing, unattached node.
            **fields: Constructor arguments for a new HierarchyNode when `node` is None.
        """
        node = self._make(node, fields)
        self._attach(node, None)
        self._notify(ChangeKind.ADDED, node)
        return node

    def add_child(self, parent: HierarchyNode, node: HierarchyNode = None, **fields) -> HierarchyNode:
        """
        Appends a child to `parent`, turning the parent into a compound if needed.
        """
        self._require(parent)
        node = self._make(node, fields)
        self._attach(node, parent)
        self._notify(ChangeKind.ADDED, node)
        return node

    def remove(self, node: HierarchyNode):
        """Removes `node` and its children from the hierarchy."""
        self._require(node)
        self._detach(node)
        self._notify(ChangeKind.REMOVED, node)

    def reparent(self, node: HierarchyNode, new_parent: HierarchyNode = None):
        """
        Moves `node` to the top level (new_parent=None) or under a compound.

        The node keeps its world placement: its local transform is rewritten
        relative to the new parent.
        """
        self._require(node)
        if new_parent is not None:
            self._require(new_parent)
            self._check_parent(new_parent, node)
        world = node.world_transform
        self._detach(node)
        self._attach(node, new_parent)
        node.transform = world if new_parent is None else invert(new_parent.world_transform) @ world
        self._notify(ChangeKind.REPARENTED, node)

    def set_compound(self, node: HierarchyNode, compound: bool = True):
        """
        Toggles a node's compound flag.

        Turning it off makes the node a sphere; its children stay attached
        but are not flattened until the flag is turned back on.
        """
        self._require(node)
        if compound == node.is_compound:
            return
        if compound:
            if node.is_child_of_compound:
                raise ValueError("A compound child cannot become a compound.")
            node.shape_kind = ShapeKind.COMPOUND
        else:
            node.shape_kind = ShapeKind.SPHERE
        self._notify(ChangeKind.COMPOUND_TOGGLED, node)

    def update(self, node: HierarchyNode, **fields):
        """Edits non-structural fields of `node`, e.g. shape_params or material."""
        self._require(node)
        kind = fields.get('shape_kind')
        if kind is not None and (_coerce_enum(ShapeKind, kind) == ShapeKind.COMPOUND) != node.is_compound:
            raise ValueError("Use set_compound() to toggle the compound flag.")
        node._set(**fields)
        self._notify(ChangeKind.MODIFIED, node)
