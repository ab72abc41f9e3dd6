import numpy as np
import atexit
from .scene import SDFScene

# Packed, little-endian records matching the shader's structured buffers.
# `transform` is the row-major world-to-local matrix.
NODE_DTYPE = np.dtype([
    ('type', '<i4'),
    ('blend_op', '<i4'),
    ('blend_factor', '<f4'),
    ('shape_data', '<f4', (4,)),
    ('transform', '<f4', (4, 4)),
])

NODE_WITH_MATERIAL_DTYPE = np.dtype(NODE_DTYPE.descr + [
    ('primary_color', '<f4', (4,)),
    ('secondary_color', '<f4', (4,)),
    ('emission_color', '<f4', (4,)),
    ('texture_data', '<f4', (4,)),
    ('texture_type', '<i4'),
    ('smoothness', '<f4'),
    ('metallic', '<f4'),
])


def pack_nodes(scene: SDFScene, extended: bool = True, capacity: int = None) -> np.ndarray:
    """
    Packs a scene's nodes into GPU records, in flattening order.

    Args:
        scene (SDFScene): The snapshot to export.
        extended (bool): Include the material fields (168-byte records) instead of
                         the minimal 92-byte records.
        capacity (int, optional): Pad the array with zeroed records up to this length,
                                  for shaders bound to fixed-size arrays.
    """
    count = scene.total_node_count
    length = count if capacity is None else capacity
    if length < count:
        raise ValueError(f"capacity {capacity} is smaller than the scene's {count} nodes.")

    records = np.zeros(length, dtype=NODE_WITH_MATERIAL_DTYPE if extended else NODE_DTYPE)
    if count == 0:
        return records

    nodes = scene.nodes
    head = records[:count]
    head['type'] = [int(n.shape_kind) for n in nodes]
    head['blend_op'] = [int(n.blend_op) for n in nodes]
    head['blend_factor'] = [n.blend_factor for n in nodes]
    head['shape_data'] = np.stack([n.shape_params for n in nodes])
    head['transform'] = np.stack([n.world_to_local for n in nodes])
    if extended:
        materials = [n.material for n in nodes]
        head['primary_color'] = np.stack([m.primary_color for m in materials])
        head['secondary_color'] = np.stack([m.secondary_color for m in materials])
        head['emission_color'] = np.stack([m.emission_color for m in materials])
        head['texture_data'] = np.stack([m.texture_params for m in materials])
        head['texture_type'] = [int(m.texture_kind) for m in materials]
        head['smoothness'] = [m.smoothness for m in materials]
        head['metallic'] = [m.metallic for m in materials]
    return records


class SceneBuffers:
    """Everything a shader needs to replay the flattening of one scene."""
    def __init__(self, nodes: np.ndarray, node_count: int, group_count: int, group_end_offsets: np.ndarray):
        self.nodes = nodes
        self.node_count = node_count
        self.group_count = group_count
        self.group_end_offsets = group_end_offsets

    @property
    def record_size(self) -> int:
        return self.nodes.dtype.itemsize

    def uniforms(self) -> dict:
        """Values keyed by the shader's property names."""
        return {
            'SDFCountTotal': self.node_count,
            'SDFCountCompounded': self.group_count,
            'OffsetsToNextSdf': self.group_end_offsets,
            'SDFObjects': self.nodes,
        }

    def upload(self, ctx=None) -> dict:
        """
        Creates GPU buffers for the node records and group offsets.

        Args:
            ctx (moderngl.Context, optional): Target context. A hidden standalone
                                              context is created when omitted.

        Returns:
            dict: {'SDFObjects': Buffer, 'OffsetsToNextSdf': Buffer}
        """
        if ctx is None:
            ctx = HeadlessContext.get()
        nodes_data = self.nodes.tobytes()
        offsets_data = self.group_end_offsets.tobytes()
        return {
            'SDFObjects': ctx.buffer(nodes_data) if nodes_data else ctx.buffer(reserve=self.record_size),
            'OffsetsToNextSdf': ctx.buffer(offsets_data) if offsets_data else ctx.buffer(reserve=4),
        }


def export_buffers(scene: SDFScene, extended: bool = True, capacity: int = None) -> SceneBuffers:
    """
    Exports a scene in the layout expected by the shader.

    With `capacity`, both the node records and the offsets are zero padded
    to that length.
    """
    nodes = pack_nodes(scene, extended=extended, capacity=capacity)
    offsets = np.zeros(len(nodes) if capacity is not None else scene.group_count, dtype='<i4')
    offsets[:scene.group_count] = scene.group_end_offsets
    return SceneBuffers(nodes, scene.total_node_count, scene.group_count, offsets)


class HeadlessContext:
    """
    A hidden moderngl context shared by uploads that do not bring their own.
    """
    _ctx = None

    @classmethod
    def get(cls):
        if cls._ctx is not None:
            return cls._ctx
        try:
            import moderngl
        except ImportError:
            raise RuntimeError("Uploading scene buffers requires 'moderngl'. Run 'pip install moderngl'.")

        try:
            cls._ctx = moderngl.create_standalone_context()
        except Exception as e:
            raise RuntimeError(f"Could not create a headless OpenGL context: {e}")

        atexit.register(cls.release)
        return cls._ctx

    @classmethod
    def release(cls):
        if cls._ctx is not None:
            cls._ctx.release()
            cls._ctx = None
