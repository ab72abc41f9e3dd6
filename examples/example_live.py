import sys
import time
from sdfcompose import Hierarchy, SceneBuilder, DistanceEvaluator
from sdfcompose.watch import ScriptHierarchySource

def main():
    """Edit this function while the script runs; the scene is rebuilt on save."""
    h = Hierarchy()
    h.add(shape_kind='torus', shape_params=(0.5, 0.15, 0, 0))
    h.add(shape_params=(0.3, 0, 0, 0), blend_factor=0.2)
    return h

if __name__ == "__main__":
    source = ScriptHierarchySource(__file__, verbose=True)
    with SceneBuilder(source, verbose=True) as builder:
        f = DistanceEvaluator(builder)
        try:
            while True:
                print(f"distance at origin: {float(f([0.0, 0.0, 0.0])):+.4f}", file=sys.stderr)
                time.sleep(2.0)
        except KeyboardInterrupt:
            pass
        finally:
            source.stop()
