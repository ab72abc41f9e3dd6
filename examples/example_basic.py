import numpy as np
from sdfcompose import Hierarchy, SceneBuilder, DistanceEvaluator, translation

def main():
    """
    Builds a small scene and returns its hierarchy.

    A sphere and a box are smoothly united, then a smaller sphere is
    carved out of the middle.
    """
    h = Hierarchy()
    h.add(shape_params=(0.6, 0, 0, 0), name='ball')
    h.add(shape_kind='box', shape_params=(0.35, 0, 0, 0.05), transform=translation((0.5, 0, 0)), blend_factor=0.2)
    h.add(shape_params=(0.3, 0, 0, 0), blend_op='subtract', blend_factor=0.05, name='hole')
    return h

if __name__ == "__main__":
    with SceneBuilder(main(), verbose=True) as builder:
        f = DistanceEvaluator(builder)
        points = np.array([[0, 0, 0], [0.5, 0, 0], [2, 0, 0]], dtype=float)
        for p, d in zip(points, f(points)):
            print(f"{tuple(p)} -> {d:+.4f}")
        f.save('example_basic.stl', resolution=96)
