import base64
import json
import struct

import numpy as np
import pytest

from kdscene.gltf_accessor import (
    COMPONENT_FLOAT,
    COMPONENT_UNSIGNED_BYTE,
    COMPONENT_UNSIGNED_SHORT,
    GltfDocument,
    GltfError,
)
from kdscene.gltf_loader import GLTFMaterial, build_model, load_gltf_model
from kdscene.linalg import identity, translation, translation_matrix
from kdscene.mesh import pack_rgba

_WIDTH = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4, "MAT4": 16}
_FMT = {COMPONENT_FLOAT: "f", COMPONENT_UNSIGNED_BYTE: "B", COMPONENT_UNSIGNED_SHORT: "H"}

TRI_POS = [0.0, 0.0, 1.0, 1.0, 0.0, 2.0, 0.0, 1.0, 3.0]


class _Builder:
    def __init__(self):
        self.data = bytearray()
        self.views = []
        self.accessors = []

    def add(self, values, component_type, type_):
        while len(self.data) % 4:
            self.data.append(0)
        offset = len(self.data)
        raw = struct.pack("<%d%s" % (len(values), _FMT[component_type]), *values)
        self.data += raw
        self.views.append({"buffer": 0, "byteOffset": offset, "byteLength": len(raw)})
        self.accessors.append(
            {
                "bufferView": len(self.views) - 1,
                "componentType": component_type,
                "count": len(values) // _WIDTH[type_],
                "type": type_,
            }
        )
        return len(self.accessors) - 1

    def tree(self, **sections):
        tree = {
            "asset": {"version": "2.0"},
            "buffers": [{"byteLength": len(self.data)}],
            "bufferViews": self.views,
            "accessors": self.accessors,
        }
        tree.update(sections)
        return tree

    def document(self, **sections):
        return GltfDocument(self.tree(**sections), [bytes(self.data)])


def _triangle(builder, positions=TRI_POS, **attributes):
    pos = builder.add(positions, COMPONENT_FLOAT, "VEC3")
    idx = builder.add([0, 1, 2], COMPONENT_UNSIGNED_SHORT, "SCALAR")
    return {"attributes": {"POSITION": pos, **attributes}, "indices": idx}


def _mesh_document(builder, primitives, **extra):
    sections = {
        "meshes": [{"primitives": primitives}],
        "nodes": [{"name": "body", "mesh": 0}],
        "scenes": [{"nodes": [0]}],
    }
    sections.update(extra)
    return builder.document(**sections)


def test_triangle_is_mirrored_and_rewound():
    builder = _Builder()
    model = build_model(_mesh_document(builder, [_triangle(builder)]))
    node = model.nodes[0]
    assert node.is_mesh
    expected = [(TRI_POS[i], TRI_POS[i + 1], -TRI_POS[i + 2]) for i in range(0, 9, 3)]
    assert [v.pos for v in node.mesh.vertices] == expected
    assert [f.idx for f in node.mesh.faces] == [(0, 2, 1)]
    subset = node.mesh.subsets[0]
    assert (subset.material_no, subset.face_start, subset.face_count) == (0, 0, 1)
    assert node.mesh.is_skin_mesh is False


def test_default_material_when_document_has_none():
    builder = _Builder()
    model = build_model(_mesh_document(builder, [_triangle(builder)]))
    assert model.materials == [GLTFMaterial()]
    assert model.materials[0].alpha_mode == "OPAQUE"


def test_material_fields_and_texture_names():
    builder = _Builder()
    material = {
        "name": "skin",
        "alphaMode": "MASK",
        "alphaCutoff": 0.25,
        "doubleSided": True,
        "pbrMetallicRoughness": {
            "baseColorFactor": [0.5, 0.25, 1.0, 1.0],
            "baseColorTexture": {"index": 0},
            "metallicFactor": 0.0,
            "roughnessFactor": 0.5,
        },
        "emissiveFactor": [1.0, 0.5, 0.0],
        "normalTexture": {"index": 1},
        "occlusionTexture": {"index": 0},
    }
    doc = _mesh_document(
        builder,
        [_triangle(builder)],
        materials=[material],
        textures=[{"source": 0}, {"source": -1}],
        images=[{"uri": "skin.png"}],
    )
    result = build_model(doc).materials[0]
    assert result.name == "skin"
    assert result.alpha_mode == "MASK"
    assert result.alpha_cutoff == 0.25
    assert result.double_sided is True
    assert result.base_color == (0.5, 0.25, 1.0, 1.0)
    assert result.base_color_tex_name == "skin.png"
    assert result.occlusion_tex_name == "skin.png"
    assert result.normal_tex_name == ""
    assert result.metallic_roughness_tex_name == ""
    assert (result.metallic, result.roughness) == (0.0, 0.5)
    assert result.emissive == (1.0, 0.5, 0.0)


def test_hierarchy_world_transforms():
    builder = _Builder()
    root_t = [1.0, 2.0, 3.0]
    doc = builder.document(
        nodes=[
            {"name": "root", "children": [1], "translation": root_t},
            {"name": "child", "translation": [4.0, 5.0, 6.0], "rotation": [0, 0, 0.6, 0.8]},
        ],
        scenes=[{"nodes": [0]}],
    )
    model = build_model(doc)
    root, child = model.nodes
    assert root.parent == -1
    assert child.parent == 0
    assert model.root_node_indices == [0]
    assert np.allclose(translation(root.local_transform), [root_t[0], root_t[1], -root_t[2]])
    assert np.allclose(root.world_transform, root.local_transform)
    assert np.allclose(child.world_transform, child.local_transform @ root.world_transform)
    assert not root.is_mesh


def test_node_matrix_is_used():
    builder = _Builder()
    t = [7.0, 8.0, 9.0]
    matrix = [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, t[0], t[1], t[2], 1]
    doc = builder.document(nodes=[{"matrix": matrix}], scenes=[{"nodes": [0]}])
    node = build_model(doc).nodes[0]
    assert np.allclose(translation(node.local_transform), [t[0], t[1], -t[2]])


def test_primitives_are_sorted_by_material_and_merged():
    builder = _Builder()
    first = _triangle(builder)
    first["material"] = 1
    other = [5.0, 5.0, 5.0, 6.0, 5.0, 5.0, 5.0, 6.0, 5.0]
    second = _triangle(builder, positions=other)
    second["material"] = 0
    node = build_model(_mesh_document(builder, [first, second])).nodes[0]
    mesh = node.mesh
    assert [s.material_no for s in mesh.subsets] == [0, 1]
    assert [s.face_start for s in mesh.subsets] == [0, 1]
    assert [s.face_count for s in mesh.subsets] == [1, 1]
    assert mesh.vertices[0].pos == (other[0], other[1], -other[2])
    assert mesh.faces[1].idx == tuple(i + 3 for i in mesh.faces[0].idx)


def test_normals_and_tangents():
    builder = _Builder()
    normals = builder.add([0, 0, 1, 0, 1, 0, 1, 0, 0], COMPONENT_FLOAT, "VEC3")
    node = build_model(_mesh_document(builder, [_triangle(builder, NORMAL=normals)])).nodes[0]
    assert node.mesh.vertices[0].normal == (0.0, 0.0, -1.0)
    for vertex in node.mesh.vertices:
        tangent = np.array(vertex.tangent)
        assert np.linalg.norm(tangent) > 0
        assert abs(float(np.dot(tangent, vertex.normal))) < 1e-9


def test_uv_and_colors():
    builder = _Builder()
    uv = builder.add([0, 255, 255, 0, 0, 0], COMPONENT_UNSIGNED_BYTE, "VEC2")
    rgba = builder.add([1, 0, 0, 1] * 3, COMPONENT_FLOAT, "VEC4")
    node = build_model(
        _mesh_document(builder, [_triangle(builder, TEXCOORD_0=uv, COLOR_0=rgba)])
    ).nodes[0]
    assert node.mesh.vertices[0].uv == (0.0, 1.0)
    assert node.mesh.vertices[1].uv == (1.0, 0.0)
    assert all(v.color == pack_rgba(1, 0, 0, 1) for v in node.mesh.vertices)


def test_rgb_colors_keep_full_alpha():
    builder = _Builder()
    rgb = builder.add([0, 1, 0] * 3, COMPONENT_FLOAT, "VEC3")
    node = build_model(_mesh_document(builder, [_triangle(builder, COLOR_0=rgb)])).nodes[0]
    assert node.mesh.vertices[0].color == pack_rgba(0, 1, 0, 1)


def _skinned_document(builder, with_skin=True):
    joints = builder.add([0] * 12, COMPONENT_UNSIGNED_BYTE, "VEC4")
    weights = builder.add(
        [0.5, 0.25, 0, 0, 0, 0, 0, 0, 1, 0, 0, 0], COMPONENT_FLOAT, "VEC4"
    )
    ibm = builder.add(list(translation_matrix(-1, 0, 0).ravel()), COMPONENT_FLOAT, "MAT4")
    extra = {"skins": [{"joints": [0], "inverseBindMatrices": ibm}]} if with_skin else {}
    prim = _triangle(builder, JOINTS_0=joints, WEIGHTS_0=weights)
    return builder.document(
        meshes=[{"primitives": [prim]}],
        nodes=[{"name": "bone"}, {"name": "body", "mesh": 0}],
        scenes=[{"nodes": [0, 1]}],
        **extra,
    )


def test_skinning_data():
    model = build_model(_skinned_document(_Builder()))
    bone, body = model.nodes
    assert model.bone_node_indices == [0]
    assert bone.bone_node_index == 0
    assert body.bone_node_index == -1
    assert np.allclose(bone.world_transform @ bone.inverse_bind_matrix, identity())
    assert np.allclose(bone.local_transform, bone.world_transform)
    assert body.mesh.is_skin_mesh
    for vertex in body.mesh.vertices:
        assert sum(vertex.skin_weight_list) == pytest.approx(1.0)
        assert vertex.skin_index_list == (0, 0, 0, 0)
    assert body.mesh.vertices[1].skin_weight_list[0] == 1.0


def test_skin_attributes_ignored_without_skins():
    model = build_model(_skinned_document(_Builder(), with_skin=False))
    assert model.nodes[1].mesh.is_skin_mesh is False
    assert model.bone_node_indices == []


def test_non_triangle_primitive_is_skipped():
    builder = _Builder()
    lines = _triangle(builder)
    lines["mode"] = 1
    node = build_model(_mesh_document(builder, [lines, _triangle(builder)])).nodes[0]
    assert len(node.mesh.subsets) == 1
    assert len(node.mesh.vertices) == 3


def test_animations_are_built():
    builder = _Builder()
    times = builder.add([0.0, 1.0], COMPONENT_FLOAT, "SCALAR")
    values = builder.add([0, 0, 0, 1, 2, 3], COMPONENT_FLOAT, "VEC3")
    doc = builder.document(
        nodes=[{"name": "a"}],
        scenes=[{"nodes": [0]}],
        animations=[
            {
                "name": "walk",
                "samplers": [{"input": times, "output": values}],
                "channels": [{"sampler": 0, "target": {"node": 0, "path": "translation"}}],
            }
        ],
    )
    animation = build_model(doc).animations[0]
    assert animation.name == "walk"
    assert [n.node_offset for n in animation.nodes] == [0]
    assert len(animation.nodes[0].translations) == 2


def test_missing_position_raises():
    builder = _Builder()
    idx = builder.add([0, 1, 2], COMPONENT_UNSIGNED_SHORT, "SCALAR")
    with pytest.raises(GltfError):
        build_model(_mesh_document(builder, [{"attributes": {}, "indices": idx}]))


def test_missing_scene_raises():
    builder = _Builder()
    with pytest.raises(GltfError):
        build_model(builder.document(nodes=[{"name": "a"}]))


def test_bad_index_accessor_raises():
    builder = _Builder()
    prim = _triangle(builder)
    prim["indices"] = 99
    with pytest.raises(GltfError):
        build_model(_mesh_document(builder, [prim]))


def test_load_gltf_model_from_file(tmp_path):
    builder = _Builder()
    prim = _triangle(builder)
    tree = builder.tree(
        meshes=[{"primitives": [prim]}],
        nodes=[{"name": "body", "mesh": 0}],
        scenes=[{"nodes": [0]}],
    )
    encoded = base64.b64encode(bytes(builder.data)).decode("ascii")
    tree["buffers"][0]["uri"] = "data:application/octet-stream;base64," + encoded
    path = tmp_path / "tri.gltf"
    path.write_text(json.dumps(tree))

    loaded = load_gltf_model(path)
    direct = build_model(builder.document(**{k: tree[k] for k in ("meshes", "nodes", "scenes")}))
    assert [v.pos for v in loaded.nodes[0].mesh.vertices] == [
        v.pos for v in direct.nodes[0].mesh.vertices
    ]
    assert loaded.nodes[0].name == "body"


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(GltfError):
        load_gltf_model(tmp_path / "absent.gltf")