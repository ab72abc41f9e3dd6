from sdfcompose import Hierarchy, SceneBuilder, DistanceEvaluator, ShapeKind, Material, translation, trs, X

def main():
    """
    Groups three primitives into one compound.

    The compound children are blended with each other first; the whole
    group then intersects with the box that follows it.
    """
    h = Hierarchy()
    body = h.add(shape_kind=ShapeKind.COMPOUND, name='body')
    h.add_child(body, shape_kind='capsule', shape_params=(0.2, 1.0, 0, 0))
    h.add_child(body, shape_kind='torus', shape_params=(0.4, 0.1, 0, 0),
                transform=trs(axis=X, angle=1.5708), blend_factor=0.15,
                material=Material(primary_color=(0.9, 0.3, 0.1), texture_kind='striped_triplanar'))
    h.add_child(body, shape_kind='octahedron', shape_params=(0.3, 0, 0, 0),
                transform=translation((0, 0.7, 0)), blend_factor=0.1)
    h.add(shape_kind='box', shape_params=(0.6, 0, 0, 0), blend_op='intersect')
    return h

if __name__ == "__main__":
    with SceneBuilder(main()) as builder:
        scene = builder.scene
        print(scene)
        for index, (start, end) in enumerate(scene.groups()):
            kind = "compound" if scene.is_compound_group(index) else "single"
            print(f"group {index}: [{start}, {end}) {kind}")
        DistanceEvaluator(builder).save('example_compound.obj', bounds=((-1, -1, -1), (1, 1, 1)), resolution=80)
