"""Model data shared between instances, and per-instance working copies."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

import numpy as np

from kdscene.gltf_animation import GLTFAnimationData
from kdscene.gltf_loader import GLTFModel, load_gltf_model
from kdscene.linalg import identity
from kdscene.material import Material
from kdscene.mesh import Mesh

# Nodes whose name holds this tag are collision geometry rather than visuals.
_COLLISION_TAG = "COL"

AnimationKey = Union[str, int]


@dataclass
class ModelNode:
    """Smallest unit of a model: a named transform with an optional mesh."""

    name: str = ""
    mesh: Optional[Mesh] = None
    local_transform: np.ndarray = field(default_factory=identity)
    world_transform: np.ndarray = field(default_factory=identity)
    bone_inverse_world_matrix: np.ndarray = field(default_factory=identity)
    parent: int = -1
    children: list[int] = field(default_factory=list)
    bone_index: int = -1
    is_skin_mesh: bool = False


class ModelData:
    """Immutable model contents: nodes, meshes, materials and animations."""

    def __init__(self) -> None:
        self.materials: list[Material] = []
        self.animations: list[GLTFAnimationData] = []
        self.original_nodes: list[ModelNode] = []
        self.root_node_indices: list[int] = []
        self.bone_node_indices: list[int] = []
        self.mesh_node_indices: list[int] = []
        self.collision_mesh_node_indices: list[int] = []
        self.draw_mesh_node_indices: list[int] = []

    def load(self, filename: Union[str, Path]) -> None:
        """Load a glTF file; textures are looked up next to it.

        Raises :class:`kdscene.gltf_accessor.GltfError` when the file cannot be read.
        """
        self.release()
        file_dir = str(Path(filename).parent)
        gltf_model = load_gltf_model(filename)
        self.create_nodes(gltf_model)
        self.create_materials(gltf_model, file_dir)
        self.create_animations(gltf_model)

    def create_nodes(self, gltf_model: GLTFModel) -> None:
        """Build the node list and the index lists derived from it."""
        for index, src in enumerate(gltf_model.nodes):
            mesh: Optional[Mesh] = None
            if src.is_mesh:
                mesh = Mesh()
                mesh.create(
                    src.mesh.vertices, src.mesh.faces, src.mesh.subsets, src.mesh.is_skin_mesh
                )
                self.mesh_node_indices.append(index)

            node = ModelNode(
                name=src.name,
                mesh=mesh,
                local_transform=np.array(src.local_transform, dtype=np.float64),
                world_transform=np.array(src.world_transform, dtype=np.float64),
                bone_inverse_world_matrix=np.array(src.inverse_bind_matrix, dtype=np.float64),
                parent=src.parent,
                children=list(src.children),
                bone_index=src.bone_node_index,
                is_skin_mesh=src.mesh.is_skin_mesh,
            )
            self.original_nodes.append(node)

            if _COLLISION_TAG in node.name:
                self.collision_mesh_node_indices.append(index)
            else:
                self.draw_mesh_node_indices.append(index)

        for index, src in enumerate(gltf_model.nodes):
            if src.parent == -1:
                self.root_node_indices.append(index)
            bone = src.bone_node_index
            if bone >= 0:
                if bone >= len(self.bone_node_indices):
                    self.bone_node_indices.extend([0] * (bone + 1 - len(self.bone_node_indices)))
                self.bone_node_indices[bone] = index

        # Without dedicated collision nodes the visible nodes collide as well.
        if not self.collision_mesh_node_indices:
            self.collision_mesh_node_indices = list(self.draw_mesh_node_indices)

    def create_materials(self, gltf_model: GLTFModel, file_dir: Union[str, Path]) -> None:
        """Build drawing materials, loading textures found in ``file_dir``."""
        self.materials = []
        for src in gltf_model.materials:
            material = Material(name=src.name)
            material.set_textures_from_files(
                file_dir,
                src.base_color_tex_name,
                src.metallic_roughness_tex_name,
                src.emissive_tex_name,
                src.normal_tex_name,
            )
            material.base_color_rate = tuple(src.base_color)
            material.metallic_rate = src.metallic
            material.roughness_rate = src.roughness
            material.emissive_rate = tuple(src.emissive)
            self.materials.append(material)

    def create_animations(self, gltf_model: GLTFModel) -> None:
        """Copy the animation data of ``gltf_model``."""
        self.animations = [copy.deepcopy(anim) for anim in gltf_model.animations]

    def get_mesh(self, index: int) -> Optional[Mesh]:
        """Return the mesh of node ``index``, or None."""
        if 0 <= index < len(self.original_nodes):
            return self.original_nodes[index].mesh
        return None

    def find_node(self, name: str) -> Optional[ModelNode]:
        """Return the first node called ``name``, or None."""
        return next((node for node in self.original_nodes if node.name == name), None)

    def get_animation(self, key: AnimationKey) -> Optional[GLTFAnimationData]:
        """Return an animation by name or by position, or None."""
        if isinstance(key, str):
            return next((anim for anim in self.animations if anim.name == key), None)
        if 0 <= key < len(self.animations):
            return self.animations[key]
        return None

    def is_skin_mesh(self) -> bool:
        """Tell whether any node holds a skinned mesh."""
        return any(node.is_skin_mesh for node in self.original_nodes)

    def release(self) -> None:
        """Drop every node, material, animation and index list."""
        self.materials = []
        self.animations = []
        self.original_nodes = []
        self.root_node_indices = []
        self.bone_node_indices = []
        self.mesh_node_indices = []
        self.collision_mesh_node_indices = []
        self.draw_mesh_node_indices = []


@dataclass
class WorkNode:
    """Per-instance node data that may change while the model is in use."""

    name: str = ""
    local_transform: np.ndarray = field(default_factory=identity)
    world_transform: np.ndarray = field(default_factory=identity)

    def copy_from(self, node: ModelNode) -> None:
        """Take name and transforms from ``node``."""
        self.name = node.name
        self.local_transform = np.array(node.local_transform, dtype=np.float64)
        self.world_transform = np.array(node.world_transform, dtype=np.float64)


_model_cache: dict[str, ModelData] = {}


def _shared_model(path: str) -> ModelData:
    key = os.path.normcase(os.path.abspath(path))
    model = _model_cache.get(key)
    if model is None:
        model = ModelData()
        model.load(path)
        _model_cache[key] = model
    return model


class ModelWork:
    """One instance of a model with its own modifiable node transforms."""

    def __init__(self, model: Union[ModelData, str, Path, None] = None) -> None:
        self.enabled = True
        self.data: Optional[ModelData] = None
        self.nodes: list[WorkNode] = []
        self._need_calc_node = False
        if model is not None:
            self.set_model_data(model)

    @property
    def need_calc_node_matrices(self) -> bool:
        """Tell whether node matrices changed since the last calculation."""
        return self._need_calc_node

    def set_model_data(self, model: Union[ModelData, str, Path]) -> None:
        """Use ``model`` (or the model loaded from that path) and copy its nodes."""
        if not isinstance(model, ModelData):
            model = _shared_model(str(model))
        self.data = model
        self.nodes = []
        for src in model.original_nodes:
            node = WorkNode()
            node.copy_from(src)
            self.nodes.append(node)
        self._need_calc_node = True

    def is_enabled(self) -> bool:
        """Tell whether the instance is enabled and has model data."""
        return self.enabled and self.data is not None

    def find_data_node(self, name: str) -> Optional[ModelNode]:
        """Return the shared model node called ``name``, or None."""
        if self.data is None:
            return None
        return self.data.find_node(name)

    def _search(self, name: str) -> Iterator[WorkNode]:
        return (node for node in self.nodes if node.name == name)

    def find_node(self, name: str) -> Optional[WorkNode]:
        """Return the work node called ``name``, or None."""
        return next(self._search(name), None)

    def find_work_node(self, name: str) -> Optional[WorkNode]:
        """Return the work node called ``name`` for modification, or None."""
        node = next(self._search(name), None)
        if node is not None:
            self._need_calc_node = True
        return node

    def get_mesh(self, index: int) -> Optional[Mesh]:
        """Return the mesh of node ``index``, or None."""
        if self.data is None or not 0 <= index < len(self.nodes):
            return None
        return self.data.original_nodes[index].mesh

    def get_animation(self, key: AnimationKey) -> Optional[GLTFAnimationData]:
        """Return an animation of the model by name or position, or None."""
        if self.data is None:
            return None
        return self.data.get_animation(key)

    def work_nodes(self) -> list[WorkNode]:
        """Return the work nodes for modification."""
        self._need_calc_node = True
        return self.nodes

    def calc_node_matrices(self) -> None:
        """Recompute every world matrix from the roots down."""
        if self.data is None:
            raise RuntimeError("no model data to calculate node matrices for")
        for root in self.data.root_node_indices:
            self._calc_node(root, None)
        self._need_calc_node = False

    def _calc_node(self, index: int, parent_world: Optional[np.ndarray]) -> None:
        assert self.data is not None
        data_node = self.data.original_nodes[index]
        work = self.nodes[index]
        if parent_world is None:
            work.world_transform = work.local_transform.copy()
        else:
            work.world_transform = work.local_transform @ parent_world
        for child in data_node.children:
            self._calc_node(child, work.world_transform)