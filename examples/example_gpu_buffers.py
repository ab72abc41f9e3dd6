from sdfcompose import Hierarchy, export_buffers, build, translation, NODE_CAPACITY

def main():
    h = Hierarchy()
    for i in range(4):
        h.add(shape_params=(0.2, 0, 0, 0), transform=translation((i * 0.3, 0, 0)), blend_factor=0.1)
    return h

if __name__ == "__main__":
    scene, truncated = build(main().children())
    buffers = export_buffers(scene, extended=False, capacity=NODE_CAPACITY)
    for name, value in buffers.uniforms().items():
        print(name, getattr(value, 'shape', value))
    print(f"{buffers.record_size} bytes per record, truncated={truncated}")
