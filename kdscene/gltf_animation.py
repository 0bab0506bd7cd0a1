"""Animation key extraction from glTF documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from kdscene.gltf_accessor import BufferGetter, GltfDocument, GltfError

# Key times are converted from seconds to frames assuming 60 frames per second.
_FRAMES_PER_SECOND = 60.0


@dataclass
class AnimKeyVector3:
    """A timed 3-component key."""

    time: float = 0.0
    vec: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class AnimKeyQuaternion:
    """A timed rotation key (x, y, z, w)."""

    time: float = 0.0
    quat: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)


@dataclass
class GLTFAnimationNode:
    """Animation keys for one node."""

    node_offset: int = -1
    translations: list[AnimKeyVector3] = field(default_factory=list)
    rotations: list[AnimKeyQuaternion] = field(default_factory=list)
    scales: list[AnimKeyVector3] = field(default_factory=list)


@dataclass
class GLTFAnimationData:
    """One named animation and the nodes it drives."""

    name: str = ""
    max_length: float = 0.0
    nodes: list[GLTFAnimationNode] = field(default_factory=list)


def _vec3(getter: BufferGetter, key: int, interpolation: str, flip_z: bool):
    if interpolation in ("STEP", "LINEAR"):
        base = key * 3
    elif interpolation == "CUBICSPLINE":
        base = key * 9 + 3
    else:
        return None
    x, y, z = (getter.get_float(base + i) for i in range(3))
    return (x, y, -z if flip_z else z)


def _quat(getter: BufferGetter, key: int, interpolation: str):
    if interpolation in ("STEP", "LINEAR"):
        base = key * 4
    elif interpolation == "CUBICSPLINE":
        base = key * 12 + 4
    else:
        return None
    x, y, z, w = (getter.get_float(base + i) for i in range(4))
    return (-x, -y, z, w)


def _build_one(document: GltfDocument, source: dict, node_count: int) -> GLTFAnimationData:
    animation = GLTFAnimationData(name=source.get("name", ""))
    samplers = source.get("samplers", [])
    per_node: list[Optional[GLTFAnimationNode]] = [None] * node_count

    for channel in source.get("channels", []):
        try:
            sampler = samplers[channel["sampler"]]
        except (IndexError, KeyError, TypeError) as exc:
            raise GltfError("animation channel refers to a missing sampler") from exc
        target = channel.get("target", {})
        node_index = target.get("node", -1)
        if node_index < 0:
            continue
        if node_index >= node_count:
            raise GltfError(f"animation targets missing node {node_index}")

        anim_node = per_node[node_index]
        if anim_node is None:
            anim_node = GLTFAnimationNode(node_offset=node_index)
            per_node[node_index] = anim_node

        path = target.get("path", "")
        if path not in ("translation", "scale", "rotation"):
            continue

        times = BufferGetter(document, sampler["input"])
        values = BufferGetter(document, sampler["output"])
        interpolation = sampler.get("interpolation", "LINEAR")

        for key in range(times.count):
            time = times.get_float(key) * _FRAMES_PER_SECOND
            animation.max_length = max(animation.max_length, time)

            if path == "rotation":
                quat = _quat(values, key, interpolation)
                if quat is not None:
                    anim_node.rotations.append(AnimKeyQuaternion(time, quat))
            else:
                vec = _vec3(values, key, interpolation, flip_z=path == "translation")
                if vec is None:
                    continue
                keys = anim_node.translations if path == "translation" else anim_node.scales
                keys.append(AnimKeyVector3(time, vec))

    animation.nodes = [node for node in per_node if node is not None]
    return animation


def build_animations(document: GltfDocument, node_count: int) -> list[GLTFAnimationData]:
    """Build animation data for every animation of ``document``.

    Positions have Z negated and rotations have X and Y negated to move into
    a left-handed coordinate system. Nodes without channels are left out.
    """
    return [_build_one(document, source, node_count) for source in document.animations]