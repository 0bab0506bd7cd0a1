# kdscene

Scene data for a small 3D framework: load glTF (`.gltf` / `.glb`) models into a
left-handed coordinate system, build meshes with bounding volumes, read node
animation keys, load textures with Pillow, and build trail (strip) polygons.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Loading a model

`load_gltf_model` reads a file and returns a `GLTFModel` holding nodes,
materials and animations. Z is mirrored on load: matrices go through
`kdscene.linalg.mirror_z`, positions and normals have z negated, rotation keys
have x and y negated, and triangle winding is swapped to match. Only triangle
primitives are read; the first skin (if any) sets up bones.

```python
from kdscene.gltf_loader import load_gltf_model

model = load_gltf_model("Asset/Models/robot.glb")
for node in model.nodes:
    print(node.name, node.parent, node.is_mesh)
print([material.name for material in model.materials])
```

Files that cannot be read or are malformed raise
`kdscene.gltf_accessor.GltfError`.

`ModelData` builds `Mesh` objects with bounding box and sphere, splits nodes
into draw and collision lists (nodes whose name contains `COL` are collision
nodes; without any, the draw nodes are used), and resolves material textures
from the model's directory:

```python
from kdscene.model import ModelData, ModelWork

data = ModelData()
data.load("Asset/Models/robot.glb")

work = ModelWork(data)
arm = work.find_work_node("Arm")
work.calc_node_matrices()
walk = work.get_animation("Walk")
```

`ModelData.get_animation` and `ModelWork.get_animation` accept either an
animation name or an index, and return `None` when nothing matches.
`ModelWork` may also be given a file path; models loaded that way are shared
between instances.

## Inspecting a glTF document

```python
from kdscene.gltf_accessor import load_gltf, BufferGetter
from kdscene.gltf_dump import dump

document = load_gltf("scene.gltf")
print(dump(document))

positions = BufferGetter(document, 0)
print(positions.count, positions.get_float(0))
```

`BufferGetter` reads accessor components (`get_float`, `get_int`, `get_unorm`)
tightly packed from the document's buffers. `parse_gltf` and `parse_glb` parse
in-memory data.

## Textures and materials

```python
from kdscene.texture import Texture
from kdscene.material import Material

texture = Texture("Asset/Textures/wall.png")
print(texture.width, texture.height, texture.mip_levels, texture.aspect_ratio())

material = Material(name="wall")
material.set_textures_from_files("Asset/Textures", "wall.png", "wall_mtrf.png", "", "")
```

Names that are empty or whose files do not exist give no texture. Setting a
metallic/roughness texture resets both rates to 1.

## Polygons

`Polygon` holds vertices and a material. Given a file path `dir/name.ext`, it
loads `name.png` as base colour and, when present, `name_mtrf.png`,
`name_emi.png` and `name_nml.png` from the same directory.

```python
from kdscene.trail_polygon import TrailPolygon, TrailPattern
from kdscene.linalg import translation_matrix

trail = TrailPolygon(None)
trail.set_length(30)
trail.add_point(translation_matrix(0.0, 0.0, 0.0))
trail.add_point(translation_matrix(0.0, 1.0, 0.0))
trail.set_pattern(TrailPattern.VERTICES)
print(len(trail.vertices))
```

The billboard pattern faces the camera given with `set_camera_matrix`.

## What the package does not do

It prepares data only: nothing is drawn, no GPU buffers are created, and
there is no window or render loop. There are no game-object classes or
factories, and no square sprite polygon; only the base `Polygon` and
`TrailPolygon` are provided.