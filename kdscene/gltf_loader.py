"""Turning glTF documents into node, mesh, material and animation data.

Everything is converted to a left-handed coordinate system:
matrices go through :func:`mirror_z`, positions and normals have Z negated,
and rotation keys have X and Y negated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import takewhile
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from kdscene.gltf_accessor import BufferGetter, GltfDocument, GltfError, load_gltf
from kdscene.gltf_animation import GLTFAnimationData, build_animations
from kdscene.linalg import (
    identity,
    mirror_z,
    quaternion_matrix,
    scale_matrix,
    translation_matrix,
)
from kdscene.mesh import MeshFace, MeshSubset, MeshVertex, pack_rgba

_MODE_TRIANGLES = 4
_UP = np.array([0.0, 1.0, 0.0])
_BACK = np.array([0.0, 0.0, -1.0])


@dataclass
class GLTFMaterial:
    """PBR material description read from a glTF document."""

    name: str = ""
    alpha_mode: str = "OPAQUE"
    alpha_cutoff: float = 0.5
    double_sided: bool = False
    base_color_tex_name: str = ""
    base_color: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    metallic_roughness_tex_name: str = ""
    metallic: float = 1.0
    roughness: float = 1.0
    emissive_tex_name: str = ""
    emissive: tuple[float, float, float] = (0.0, 0.0, 0.0)
    normal_tex_name: str = ""
    occlusion_tex_name: str = ""


@dataclass
class GLTFMesh:
    """Merged geometry of all triangle primitives of one node."""

    vertices: list[MeshVertex] = field(default_factory=list)
    faces: list[MeshFace] = field(default_factory=list)
    subsets: list[MeshSubset] = field(default_factory=list)
    is_skin_mesh: bool = False


@dataclass
class GLTFNode:
    """One node of the model: hierarchy, transforms and optional mesh."""

    name: str = ""
    children: list[int] = field(default_factory=list)
    parent: int = -1
    bone_node_index: int = -1
    local_transform: np.ndarray = field(default_factory=identity)
    world_transform: np.ndarray = field(default_factory=identity)
    inverse_bind_matrix: np.ndarray = field(default_factory=identity)
    is_mesh: bool = False
    mesh: GLTFMesh = field(default_factory=GLTFMesh)


@dataclass
class GLTFModel:
    """A whole model: nodes, root and bone index lists, materials, animations."""

    nodes: list[GLTFNode] = field(default_factory=list)
    root_node_indices: list[int] = field(default_factory=list)
    bone_node_indices: list[int] = field(default_factory=list)
    materials: list[GLTFMaterial] = field(default_factory=list)
    animations: list[GLTFAnimationData] = field(default_factory=list)


@dataclass
class _Primitive:
    vertices: list[MeshVertex]
    faces: list[MeshFace]
    material_no: int


def _texture_name(document: GltfDocument, info: Optional[dict]) -> str:
    index = (info or {}).get("index", -1)
    if index < 0:
        return ""
    image = document.textures[index].get("source", -1)
    if image < 0:
        return ""
    return document.images[image].get("uri", "")


def _build_material(document: GltfDocument, src: dict) -> GLTFMaterial:
    pbr = src.get("pbrMetallicRoughness", {})
    material = GLTFMaterial(
        name=src.get("name", ""),
        alpha_mode=src.get("alphaMode", "OPAQUE"),
        alpha_cutoff=float(src.get("alphaCutoff", 0.5)),
        double_sided=bool(src.get("doubleSided", False)),
        base_color_tex_name=_texture_name(document, pbr.get("baseColorTexture")),
        metallic_roughness_tex_name=_texture_name(
            document, pbr.get("metallicRoughnessTexture")
        ),
        metallic=float(pbr.get("metallicFactor", 1.0)),
        roughness=float(pbr.get("roughnessFactor", 1.0)),
        emissive_tex_name=_texture_name(document, src.get("emissiveTexture")),
        normal_tex_name=_texture_name(document, src.get("normalTexture")),
        occlusion_tex_name=_texture_name(document, src.get("occlusionTexture")),
    )
    base_color = pbr.get("baseColorFactor", [])
    if len(base_color) == 4:
        material.base_color = tuple(float(c) for c in base_color)
    emissive = src.get("emissiveFactor", [])
    if len(emissive) == 3:
        material.emissive = tuple(float(c) for c in emissive)
    return material


def _local_transform(src: dict) -> np.ndarray:
    scale = scale_matrix(*src["scale"][:3]) if src.get("scale") else identity()
    rotation = quaternion_matrix(*src["rotation"][:4]) if src.get("rotation") else identity()
    move = translation_matrix(*src["translation"][:3]) if src.get("translation") else identity()
    if src.get("matrix"):
        # The column-major glTF matrix read row by row is the row-vector form.
        scale = np.array(src["matrix"][:16], dtype=np.float64).reshape(4, 4)
    return mirror_z(scale @ rotation @ move)


def _tangent(normal: tuple[float, float, float]) -> tuple[float, float, float]:
    tangent = np.cross(_UP, normal)
    if not tangent.any():
        tangent = np.cross(_BACK, normal)
    return tuple(float(c) for c in tangent)


def _as_short(value: int) -> int:
    return ((value + 0x8000) & 0xFFFF) - 0x8000


def _normalized_weights(weights: list[float]) -> tuple[float, float, float, float]:
    if weights[0] == 0:
        weights[0] = 1.0
    count = len(list(takewhile(lambda w: w != 0.0, weights)))
    weights[count - 1] = 1.0 - sum(weights[: count - 1])
    return tuple(weights)


def _read_primitive(
    document: GltfDocument, src: dict, has_skins: bool, mesh: GLTFMesh
) -> _Primitive:
    attributes: dict[str, int] = src.get("attributes", {})
    if "POSITION" not in attributes:
        raise GltfError("primitive has no POSITION attribute")

    pos = BufferGetter(document, attributes["POSITION"])
    if pos.type != "VEC3":
        raise GltfError(f"unsupported position type {pos.type!r}")
    count = pos.count
    positions = [
        (pos.get_float(i * 3), pos.get_float(i * 3 + 1), -pos.get_float(i * 3 + 2))
        for i in range(count)
    ]

    normals = [(0.0, 0.0, 0.0)] * count
    if "NORMAL" in attributes:
        nor = BufferGetter(document, attributes["NORMAL"])
        normals = [
            (nor.get_float(i * 3), nor.get_float(i * 3 + 1), -nor.get_float(i * 3 + 2))
            for i in range(count)
        ]

    uvs = [(0.0, 0.0)] * count
    if "TEXCOORD_0" in attributes:
        uv = BufferGetter(document, attributes["TEXCOORD_0"])
        uvs = [(uv.get_unorm(i * 2), uv.get_unorm(i * 2 + 1)) for i in range(count)]

    colors = [0xFFFFFFFF] * count
    if "COLOR_0" in attributes:
        col = BufferGetter(document, attributes["COLOR_0"])
        width = {"VEC3": 3, "VEC4": 4}.get(col.type)
        if width is not None:
            colors = [
                pack_rgba(*[col.get_float(i * width + k) for k in range(width)], *([1.0] * (4 - width)))
                for i in range(count)
            ]

    joints = [(0, 0, 0, 0)] * count
    weights = [(0.0, 0.0, 0.0, 0.0)] * count
    if has_skins:
        if "JOINTS_0" in attributes:
            mesh.is_skin_mesh = True
            joint = BufferGetter(document, attributes["JOINTS_0"])
            joints = [
                tuple(_as_short(joint.get_int(i * 4 + k)) for k in range(4))
                for i in range(count)
            ]
        if "WEIGHTS_0" in attributes:
            mesh.is_skin_mesh = True
            weight = BufferGetter(document, attributes["WEIGHTS_0"])
            weights = [
                _normalized_weights([weight.get_unorm(i * 4 + k) for k in range(4)])
                for i in range(count)
            ]

    vertices = [
        MeshVertex(
            pos=p,
            uv=t,
            color=c,
            normal=n,
            tangent=_tangent(n),
            skin_index_list=j,
            skin_weight_list=w,
        )
        for p, t, c, n, j, w in zip(positions, uvs, colors, normals, joints, weights)
    ]

    index = BufferGetter(document, src.get("indices", -1))
    # Indices 1 and 2 are swapped to keep the winding after the Z mirror.
    faces = [
        MeshFace((index.get_int(i * 3), index.get_int(i * 3 + 2), index.get_int(i * 3 + 1)))
        for i in range(index.count // 3)
    ]
    return _Primitive(vertices, faces, max(0, src.get("material", -1)))


def _build_mesh(document: GltfDocument, mesh_index: int, has_skins: bool) -> GLTFMesh:
    mesh = GLTFMesh()
    primitives = [
        _read_primitive(document, src, has_skins, mesh)
        for src in document.meshes[mesh_index].get("primitives", [])
        if src.get("mode", _MODE_TRIANGLES) == _MODE_TRIANGLES
    ]
    primitives.sort(key=lambda prim: prim.material_no)

    face_start = 0
    for prim in primitives:
        base = len(mesh.vertices)
        mesh.vertices.extend(prim.vertices)
        mesh.faces.extend(MeshFace(tuple(i + base for i in face.idx)) for face in prim.faces)
        mesh.subsets.append(MeshSubset(prim.material_no, face_start, len(prim.faces)))
        face_start += len(prim.faces)
    return mesh


def _apply_skin(document: GltfDocument, model: GLTFModel, skin: dict) -> None:
    joints = list(skin.get("joints", []))
    model.bone_node_indices = joints
    ibm = BufferGetter(document, skin.get("inverseBindMatrices", -1))

    for bone_index, node_index in enumerate(joints):
        bone = model.nodes[node_index]
        bone.bone_node_index = bone_index
        values = [ibm.get_float(bone_index * 16 + k) for k in range(16)]
        inverse_bind = mirror_z(np.array(values, dtype=np.float64).reshape(4, 4))
        bone.inverse_bind_matrix = inverse_bind
        bone.world_transform = np.linalg.inv(inverse_bind)

    for node_index in joints:
        bone = model.nodes[node_index]
        if bone.parent >= 0:
            parent_ibm = model.nodes[bone.parent].inverse_bind_matrix
            bone.local_transform = bone.world_transform @ parent_ibm
        else:
            bone.local_transform = bone.world_transform.copy()


def _build(document: GltfDocument) -> GLTFModel:
    model = GLTFModel()
    model.materials = [_build_material(document, src) for src in document.materials]
    if not model.materials:
        model.materials.append(GLTFMaterial())

    sources = document.nodes
    model.nodes = [
        GLTFNode(
            name=src.get("name", ""),
            children=list(src.get("children", [])),
            local_transform=_local_transform(src),
            is_mesh=src.get("mesh", -1) >= 0,
        )
        for src in sources
    ]
    for index, node in enumerate(model.nodes):
        for child in node.children:
            model.nodes[child].parent = index

    if not document.scenes:
        raise GltfError("document has no scene")
    model.root_node_indices = list(document.scenes[0].get("nodes", []))

    def propagate(node: GLTFNode, parent_world: Optional[np.ndarray]) -> None:
        if parent_world is None:
            node.world_transform = node.local_transform.copy()
        else:
            node.world_transform = node.local_transform @ parent_world
        for child in node.children:
            propagate(model.nodes[child], node.world_transform)

    for root in model.root_node_indices:
        propagate(model.nodes[root], None)

    has_skins = bool(document.skins)
    if has_skins:
        _apply_skin(document, model, document.skins[0])

    for node, src in zip(model.nodes, sources):
        mesh_index = src.get("mesh", -1)
        if mesh_index < 0:
            continue
        node.is_mesh = True
        node.mesh = _build_mesh(document, mesh_index, has_skins)

    model.animations = build_animations(document, len(model.nodes))
    return model


def build_model(document: GltfDocument) -> GLTFModel:
    """Build a model from a parsed glTF document."""
    try:
        return _build(document)
    except (IndexError, KeyError, TypeError, ValueError) as exc:
        raise GltfError(f"malformed glTF document: {exc}") from exc


def load_gltf_model(path: Union[str, Path]) -> GLTFModel:
    """Load a ``.gltf`` or ``.glb`` file and build its model."""
    document: Any = load_gltf(path)
    return build_model(document)