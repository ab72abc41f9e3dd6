import sys
import threading
from .core import SDFNode, ShapeKind, NODE_CAPACITY, CHILD_CAPACITY
from .transforms import invert


class SDFScene:
    """
    An immutable, flattened scene.

    `nodes` lists every node in flattening order. Each top-level group owns
    the contiguous range ending at its entry in `group_end_offsets`: either
    one primitive, or a compound header immediately followed by its children.
    """
    def __init__(self, nodes=(), group_end_offsets=()):
        self.nodes = tuple(nodes)
        self.group_end_offsets = tuple(int(o) for o in group_end_offsets)
        self._validate()

    def _validate(self):
        if any(not isinstance(n, SDFNode) for n in self.nodes):
            raise TypeError("SDFScene nodes must be SDFNode instances.")
        start = 0
        for end in self.group_end_offsets:
            if end <= start:
                raise ValueError(f"Group end offsets must be strictly increasing, got {self.group_end_offsets}.")
            body = self.nodes[start + 1:end]
            if body and not self.nodes[start].is_compound:
                raise ValueError(f"Group [{start}, {end}) has several nodes but no compound header.")
            if any(n.is_compound for n in body):
                raise ValueError(f"Group [{start}, {end}) contains a nested compound node.")
            start = end
        if start != len(self.nodes):
            raise ValueError(f"Last group ends at {start} but the scene has {len(self.nodes)} nodes.")

    @classmethod
    def empty(cls) -> 'SDFScene':
        return cls((), ())

    @property
    def group_count(self) -> int:
        """Number of top-level groups; a compound counts as one."""
        return len(self.group_end_offsets)

    @property
    def total_node_count(self) -> int:
        """Number of flattened nodes; a compound counts as header plus children."""
        return len(self.nodes)

    def group_range(self, index: int) -> tuple:
        end = self.group_end_offsets[index]
        start = self.group_end_offsets[index - 1] if index > 0 else 0
        return start, end

    def groups(self):
        """Yields the (start, end) range of each group in flattening order."""
        start = 0
        for end in self.group_end_offsets:
            yield start, end
            start = end

    def is_compound_group(self, index: int) -> bool:
        start, _ = self.group_range(index)
        return self.nodes[start].is_compound

    def __len__(self):
        return len(self.nodes)

    def __eq__(self, other):
        return (isinstance(other, SDFScene) and self.nodes == other.nodes
                and self.group_end_offsets == other.group_end_offsets)

    def __hash__(self):
        return hash((self.nodes, self.group_end_offsets))

    def __repr__(self):
        return f"SDFScene(groups={self.group_count}, nodes={self.total_node_count})"


def _to_sdf_node(descriptor, shape_kind=None, num_children: int = 0) -> SDFNode:
    return SDFNode(
        shape_kind=descriptor.shape_kind if shape_kind is None else shape_kind,
        shape_params=descriptor.shape_params,
        blend_op=descriptor.blend_op,
        blend_factor=descriptor.blend_factor,
        world_to_local=invert(descriptor.world_transform),
        material=descriptor.material,
        num_children=num_children,
    )


def build(root_children, node_capacity: int = NODE_CAPACITY, child_capacity: int = CHILD_CAPACITY, verbose: bool = False):
    """
    Flattens the top-level nodes of a hierarchy into an SDFScene.

    Args:
        root_children (iterable): Ordered top-level descriptors (HierarchyNode or
                                  anything exposing the same fields).
        node_capacity (int): Maximum number of flattened nodes.
        child_capacity (int): Maximum number of children kept per compound.
        verbose (bool): Print a warning when the hierarchy was truncated.

    Returns:
        tuple: (SDFScene, truncated). `truncated` is True when any node was dropped
               to respect a capacity.
    """
    if node_capacity < 1:
        raise ValueError(f"node_capacity must be at least 1, got {node_capacity}")
    if child_capacity < 0:
        raise ValueError(f"child_capacity must not be negative, got {child_capacity}")

    nodes, offsets = [], []
    consumed = set()
    truncated = False

    for descriptor in root_children:
        if descriptor.is_child_of_compound or id(descriptor) in consumed:
            continue

        group = []
        if descriptor.shape_kind == ShapeKind.COMPOUND:
            children = list(descriptor.children)
            if len(children) > child_capacity:
                truncated = True
                children = children[:child_capacity]
            group.append(_to_sdf_node(descriptor, num_children=len(children)))
            for child in children:
                consumed.add(id(child))
                kind = ShapeKind.SPHERE if child.shape_kind == ShapeKind.COMPOUND else None
                group.append(_to_sdf_node(child, shape_kind=kind))
        else:
            group.append(_to_sdf_node(descriptor))

        if len(nodes) + len(group) > node_capacity:
            truncated = True
            break
        nodes.extend(group)
        offsets.append(len(nodes))

    if truncated and verbose:
        print(f"WARNING: Scene exceeds capacity (nodes={node_capacity}, children={child_capacity}). "
              f"Kept {len(nodes)} nodes in {len(offsets)} groups.", file=sys.stderr)

    return SDFScene(nodes, offsets), truncated


class SceneBuilder:
    """
    Keeps the current SDFScene of one hierarchy source up to date.

    Every change reported by the source rebuilds a new scene, which is then
    published by replacing a single reference. Evaluations holding the
    previous scene are unaffected.
    """
    def __init__(self, source, node_capacity: int = NODE_CAPACITY, child_capacity: int = CHILD_CAPACITY, verbose: bool = False):
        """
        Args:
            source (HierarchySource): Provider of the top-level nodes and change events.
            node_capacity (int): Maximum number of flattened nodes per build.
            child_capacity (int): Maximum number of children per compound.
            verbose (bool): Report truncation and rebuilds on stderr.
        """
        self.source = source
        self.node_capacity = node_capacity
        self.child_capacity = child_capacity
        self.verbose = verbose
        self.truncated = False
        self.version = 0
        self._scene = SDFScene.empty()
        self._lock = threading.Lock()
        source.subscribe(self._on_change)
        self._subscribed = True
        self.rebuild()

    @property
    def scene(self) -> SDFScene:
        """The currently published snapshot."""
        return self._scene

    def rebuild(self) -> SDFScene:
        with self._lock:
            scene, truncated = build(self.source.children(), self.node_capacity, self.child_capacity, verbose=self.verbose)
            self.truncated = truncated
            self._scene = scene
            self.version += 1
        if self.verbose:
            print(f"INFO: Rebuilt scene v{self.version}: {scene.group_count} groups, {scene.total_node_count} nodes.", file=sys.stderr)
        return scene

    def _on_change(self, change):
        self.rebuild()

    def close(self):
        """Stops listening to the source. The last scene stays available."""
        if self._subscribed:
            self.source.unsubscribe(self._on_change)
            self._subscribed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
