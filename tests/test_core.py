import pytest
import numpy as np
from sdfcompose import ShapeKind, BlendOp, TextureKind, Material, SDFNode, translation
from sdfcompose.core import _coerce_enum

def test_enum_codes_match_shader():
    assert int(ShapeKind.SPHERE) == 0
    assert int(ShapeKind.CONE) == 6
    assert int(ShapeKind.COMPOUND) == -1
    assert [int(op) for op in BlendOp] == [0, 1, 2, 3]

def test_coerce_enum_accepts_member_code_and_name():
    assert _coerce_enum(ShapeKind, ShapeKind.TORUS) is ShapeKind.TORUS
    assert _coerce_enum(ShapeKind, 2) is ShapeKind.TORUS
    assert _coerce_enum(ShapeKind, 'torus') is ShapeKind.TORUS
    assert _coerce_enum(BlendOp, ' Color_Blend ') is BlendOp.COLOR_BLEND
    assert _coerce_enum(ShapeKind, -1) is ShapeKind.COMPOUND

@pytest.mark.parametrize("value", ['pyramid', 42, None, 'compounds'])
def test_coerce_enum_rejects_unknown(value):
    with pytest.raises(ValueError):
        _coerce_enum(ShapeKind, value)

def test_material_defaults():
    m = Material()
    assert np.array_equal(m.primary_color, [1, 1, 1, 1])
    assert np.array_equal(m.secondary_color, [0, 0, 0, 1])
    assert m.texture_kind is TextureKind.PLAIN
    assert m.smoothness == 0.0 and m.metallic == 0.0

def test_material_rgb_gets_opaque_alpha():
    m = Material(primary_color=(1, 0, 0))
    assert np.array_equal(m.primary_color, [1, 0, 0, 1])

def test_material_validation():
    with pytest.raises(ValueError):
        Material(smoothness=1.5)
    with pytest.raises(ValueError):
        Material(metallic=-0.1)
    with pytest.raises(ValueError):
        Material(texture_params=(1, 2))
    with pytest.raises(ValueError):
        Material(texture_kind='marble')

def test_material_equality():
    assert Material(texture_kind='fbm') == Material(texture_kind=TextureKind.FBM)
    assert hash(Material()) == hash(Material())
    assert Material() != Material(metallic=0.5)

def test_node_defaults():
    node = SDFNode()
    assert node.shape_kind is ShapeKind.SPHERE
    assert np.array_equal(node.shape_params, [0.3, 0, 0, 0])
    assert node.blend_op is BlendOp.ADD
    assert node.blend_factor == 0.02
    assert np.array_equal(node.world_to_local, np.eye(4))
    assert node.material == Material()
    assert node.num_children == 0
    assert not node.is_compound

def test_node_arrays_are_read_only():
    node = SDFNode(shape_params=(0.5, 0, 0, 0.1))
    with pytest.raises(ValueError):
        node.shape_params[0] = 1.0
    with pytest.raises(ValueError):
        node.world_to_local[0, 3] = 1.0
    assert node.roundness == pytest.approx(0.1)

def test_node_copies_its_inputs():
    params = np.array([0.5, 0, 0, 0])
    node = SDFNode(shape_params=params)
    params[0] = 9.0
    assert node.shape_params[0] == 0.5

def test_node_validation():
    with pytest.raises(ValueError):
        SDFNode(shape_params=(1, 2, 3))
    with pytest.raises(ValueError):
        SDFNode(world_to_local=np.eye(3))
    with pytest.raises(ValueError):
        SDFNode(shape_kind='sphere', num_children=2)
    assert SDFNode(shape_kind='compound', num_children=2).is_compound

def test_node_to_local():
    node = SDFNode(world_to_local=translation((-1, 0, 0)))
    assert np.allclose(node.to_local(np.array([1.0, 2.0, 3.0])), [0, 2, 3])
    assert np.allclose(node.to_local(np.array([[1.0, 0, 0], [2.0, 0, 0]])), [[0, 0, 0], [1, 0, 0]])

def test_node_equality():
    a = SDFNode(shape_kind='box', shape_params=(0.5, 0, 0, 0))
    b = SDFNode(shape_kind=ShapeKind.BOX, shape_params=[0.5, 0.0, 0.0, 0.0])
    assert a == b
    assert hash(a) == hash(b)
    assert a != SDFNode(shape_kind='box', shape_params=(0.5, 0, 0, 0), blend_op='subtract')

def test_node_fields_cannot_be_reassigned():
    node = SDFNode(shape_params=(0.5, 0, 0, 0))
    with pytest.raises(AttributeError):
        node.shape_kind = ShapeKind.BOX
    with pytest.raises(AttributeError):
        node.world_to_local = np.zeros((4, 4))
    with pytest.raises(AttributeError):
        node.material = Material(metallic=1.0)
    with pytest.raises(AttributeError):
        del node.blend_factor
    with pytest.raises(AttributeError):
        node.extra = 1
    assert node.shape_kind is ShapeKind.SPHERE

def test_material_fields_cannot_be_reassigned():
    m = Material(smoothness=0.1)
    with pytest.raises(AttributeError):
        m.smoothness = 0.9
    with pytest.raises(ValueError):
        m.primary_color[0] = 0.0
    assert m.smoothness == 0.1

def test_node_rejects_foreign_material():
    with pytest.raises(TypeError):
        SDFNode(material={'smoothness': 0.5})
