"""Human-readable dumps of glTF documents for debugging."""

from __future__ import annotations

from typing import Any, Optional, Union

from kdscene.gltf_accessor import GltfDocument

_UNKNOWN = "**UNKNOWN**"

_MODES = {
    0: "POINTS",
    1: "LINE",
    2: "LINE_LOOP",
    4: "TRIANGLES",
    6: "TRIANGLE_FAN",
    5: "TRIANGLE_STRIP",
}

_TYPES = {
    65: "SCALAR",
    68: "VECTOR",
    2: "VEC2",
    3: "VEC3",
    4: "VEC4",
    80: "MATRIX",
    34: "MAT2",
    35: "MAT3",
    36: "MAT4",
}

_COMPONENT_TYPES = {
    5120: "BYTE",
    5121: "UNSIGNED_BYTE",
    5122: "SHORT",
    5123: "UNSIGNED_SHORT",
    5124: "INT",
    5125: "UNSIGNED_INT",
    5126: "FLOAT",
    5130: "DOUBLE",
}

_WRAP_MODES = {10497: "REPEAT", 33071: "CLAMP_TO_EDGE", 33648: "MIRRORED_REPEAT"}

_FILTER_MODES = {
    9728: "NEAREST",
    9729: "LINEAR",
    9984: "NEAREST_MIPMAP_NEAREST",
    9986: "NEAREST_MIPMAP_LINEAR",
    9985: "LINEAR_MIPMAP_NEAREST",
    9987: "LINEAR_MIPMAP_LINEAR",
}

_TARGETS = {34962: "GL_ARRAY_BUFFER", 34963: "GL_ELEMENT_ARRAY_BUFFER"}


def format_mode(mode: int) -> str:
    """Return the name of a primitive mode."""
    return _MODES.get(mode, _UNKNOWN)


def format_type(type_code: Union[int, str]) -> str:
    """Return the name of an accessor type given as code or name."""
    if isinstance(type_code, str):
        return type_code if type_code in _TYPES.values() else _UNKNOWN
    return _TYPES.get(type_code, _UNKNOWN)


def format_component_type(component_type: int) -> str:
    """Return the name of an accessor component type."""
    return _COMPONENT_TYPES.get(component_type, _UNKNOWN)


def format_filter_mode(mode: int) -> str:
    """Return the name of a texture filter mode."""
    return _FILTER_MODES.get(mode, _UNKNOWN)


def format_wrap_mode(mode: int) -> str:
    """Return the name of a texture wrap mode."""
    return _WRAP_MODES.get(mode, _UNKNOWN)


def _num(value: Any) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _indent(indent: int) -> str:
    return "  " * indent


def _float_array(values: Optional[list]) -> str:
    if not values:
        return ""
    return "[ " + ", ".join(_num(float(v)) for v in values) + " ]"


def _int_array(values: Optional[list]) -> str:
    if not values:
        return ""
    return "[ " + ", ".join(str(int(v)) for v in values) + " ]"


def format_value(name: str, value: Any, indent: int, tag: bool = True) -> str:
    """Format a JSON value (extras, extensions) as indented text."""
    pad = _indent(indent)
    if isinstance(value, dict):
        return "".join(format_value(k, v, indent + 1) + "\n" for k, v in value.items())
    if isinstance(value, (str, bool, int, float)):
        text = value if isinstance(value, str) else _num(value)
        return f"{pad}{name} : {text}" if tag else f"{pad}{text} "
    if isinstance(value, list):
        items = ", \n".join(format_value("", item, indent + 1, False) for item in value)
        return f"{pad}{name} [ \n{items}\n{pad}] "
    return ""


def _extensions(extensions: Optional[dict], indent: int) -> list[str]:
    lines = []
    for name, value in (extensions or {}).items():
        lines.append(_indent(indent) + name)
        lines.append(format_value("extensions", value, indent + 1))
    return lines


def _texture_info(info: Optional[dict], indent: int, extra: Optional[tuple] = None) -> list[str]:
    info = info or {}
    pad = _indent(indent)
    lines = [
        f"{pad}index     : {info.get('index', -1)}",
        f"{pad}texCoord  : TEXCOORD_{info.get('texCoord', 0)}",
    ]
    if extra is not None:
        label, key = extra
        lines.append(f"{pad}{label}: {_num(float(info.get(key, 1.0)))}")
    lines.extend(_extensions(info.get("extensions"), indent + 1))
    lines.append(format_value("extras", info.get("extras"), indent + 1))
    return lines


def _pbr(pbr: dict, indent: int) -> list[str]:
    pad = _indent(indent)
    lines = [
        f"{pad}baseColorFactor   : {_float_array(pbr.get('baseColorFactor', [1.0, 1.0, 1.0, 1.0]))}",
        f"{pad}baseColorTexture  :",
    ]
    lines += _texture_info(pbr.get("baseColorTexture"), indent + 1)
    lines.append(f"{pad}metallicFactor    : {_num(float(pbr.get('metallicFactor', 1.0)))}")
    lines.append(f"{pad}roughnessFactor   : {_num(float(pbr.get('roughnessFactor', 1.0)))}")
    lines.append(f"{pad}metallicRoughnessTexture  :")
    lines += _texture_info(pbr.get("metallicRoughnessTexture"), indent + 1)
    lines += _extensions(pbr.get("extensions"), indent + 1)
    lines.append(format_value("extras", pbr.get("extras"), indent + 1))
    return lines


def _node(node: dict, indent: int) -> list[str]:
    pad = _indent(indent)
    lines = [
        f"{pad}name        : {node.get('name', '')}",
        f"{pad}camera      : {node.get('camera', -1)}",
        f"{pad}mesh        : {node.get('mesh', -1)}",
    ]
    for key, label in (
        ("rotation", "rotation    : "),
        ("scale", "scale       : "),
        ("translation", "translation : "),
        ("matrix", "matrix      : "),
    ):
        if node.get(key):
            lines.append(pad + label + _float_array(node[key]))
    lines.append(f"{pad}children    : {_int_array(node.get('children'))}")
    return lines


def _primitive(primitive: dict, indent: int) -> list[str]:
    pad = _indent(indent)
    mode = primitive.get("mode", 4)
    attributes = primitive.get("attributes", {})
    lines = [
        f"{pad}material : {primitive.get('material', -1)}",
        f"{pad}indices : {primitive.get('indices', -1)}",
        f"{pad}mode     : {format_mode(mode)}({mode})",
        f"{pad}attributes(items={len(attributes)})",
    ]
    lines += [f"{_indent(indent + 1)}{k}: {v}" for k, v in sorted(attributes.items())]
    lines.append(f"{pad}extras :")
    lines.append(format_value("extras", primitive.get("extras"), indent + 1))
    return lines


def _accessor(accessor: dict) -> list[str]:
    p1, p2 = _indent(1), _indent(2)
    ctype = accessor.get("componentType", -1)
    lines = [
        f"{p1}name         : {accessor.get('name', '')}",
        f"{p2}bufferView   : {accessor.get('bufferView', -1)}",
        f"{p2}byteOffset   : {accessor.get('byteOffset', 0)}",
        f"{p2}componentType: {format_component_type(ctype)}({ctype})",
        f"{p2}count        : {accessor.get('count', 0)}",
        f"{p2}type         : {format_type(accessor.get('type', ''))}",
    ]
    for key, label in (("min", "min"), ("max", "max")):
        if accessor.get(key):
            values = ", ".join(_num(float(v)) for v in accessor[key])
            lines.append(f"{p2}{label}          : [{values}]")
    sparse = accessor.get("sparse")
    if sparse:
        p3, p4 = _indent(3), _indent(4)
        indices = sparse.get("indices", {})
        values = sparse.get("values", {})
        itype = indices.get("componentType", -1)
        lines += [
            f"{p2}sparse:",
            f"{p3}count  : {sparse.get('count', 0)}",
            f"{p3}indices: ",
            f"{p4}bufferView   : {indices.get('bufferView', -1)}",
            f"{p4}byteOffset   : {indices.get('byteOffset', 0)}",
            f"{p4}componentType: {format_component_type(itype)}({itype})",
            f"{p3}values : ",
            f"{p4}bufferView   : {values.get('bufferView', -1)}",
            f"{p4}byteOffset   : {values.get('byteOffset', 0)}",
        ]
    return lines


def _animation(animation: dict) -> list[str]:
    p1, p2 = _indent(1), _indent(2)
    lines = [f"{p1}name         : {animation.get('name', '')}", f"{p1}channels : [ "]
    channels = animation.get("channels", [])
    for index, channel in enumerate(channels):
        target = channel.get("target", {})
        lines += [
            f"{p2}sampler     : {channel.get('sampler', -1)}",
            f"{p2}target.id   : {target.get('node', -1)}",
            f"{p2}target.path : {target.get('path', '')}",
        ]
        if index != len(channels) - 1:
            lines.append("  , ")
    lines.append("  ]")
    samplers = animation.get("samplers", [])
    lines.append(f"{p1}samplers(items={len(samplers)})")
    for sampler in samplers:
        lines += [
            f"{p2}input         : {sampler.get('input', -1)}",
            f"{p2}interpolation : {sampler.get('interpolation', 'LINEAR')}",
            f"{p2}output        : {sampler.get('output', -1)}",
        ]
    return lines


def _material(material: dict) -> list[str]:
    p1 = _indent(1)
    lines = [
        f"{p1}name                 : {material.get('name', '')}",
        f"{p1}alphaMode            : {material.get('alphaMode', 'OPAQUE')}",
        f"{p1}alphaCutoff          : {_num(float(material.get('alphaCutoff', 0.5)))}",
        f"{p1}doubleSided          : {'true' if material.get('doubleSided') else 'false'}",
        f"{p1}emissiveFactor       : {_float_array(material.get('emissiveFactor', [0.0, 0.0, 0.0]))}",
        f"{p1}pbrMetallicRoughness :",
    ]
    lines += _pbr(material.get("pbrMetallicRoughness", {}), 2)
    lines.append(f"{p1}normalTexture        :")
    lines += _texture_info(material.get("normalTexture"), 2, ("scale     ", "scale"))
    lines.append(f"{p1}occlusionTexture     :")
    lines += _texture_info(material.get("occlusionTexture"), 2, ("strength  ", "strength"))
    lines.append(f"{p1}emissiveTexture      :")
    lines += _texture_info(material.get("emissiveTexture"), 2)
    values = material.get("values", {})
    lines.append(f"{p1}----  legacy material parameter  ----")
    lines.append(f"{p1}values(items={len(values)})")
    for key, value in values.items():
        text = _float_array(value) if isinstance(value, list) else str(value)
        lines.append(f"{_indent(2)}{key}: {text}")
    lines.append(f"{p1}-------------------------------------")
    lines += _extensions(material.get("extensions"), 1)
    lines.append(format_value("extras", material.get("extras"), 2))
    return lines


def _camera(camera: dict) -> list[str]:
    p1, p2 = _indent(1), _indent(2)
    kind = camera.get("type", "")
    lines = [f"{p1}name (id)    : {camera.get('name', '')}", f"{p1}type         : {kind}"]
    if kind == "perspective":
        persp = camera.get("perspective", {})
        lines += [
            f"{p2}aspectRatio   : {_num(float(persp.get('aspectRatio', 0.0)))}",
            f"{p2}yfov          : {_num(float(persp.get('yfov', 0.0)))}",
            f"{p2}zfar          : {_num(float(persp.get('zfar', 0.0)))}",
            f"{p2}znear         : {_num(float(persp.get('znear', 0.0)))}",
        ]
    elif kind == "orthographic":
        ortho = camera.get("orthographic", {})
        lines += [
            f"{p2}xmag          : {_num(float(ortho.get('xmag', 0.0)))}",
            f"{p2}ymag          : {_num(float(ortho.get('ymag', 0.0)))}",
            f"{p2}zfar          : {_num(float(ortho.get('zfar', 0.0)))}",
            f"{p2}znear         : {_num(float(ortho.get('znear', 0.0)))}",
        ]
    return lines


def dump(document: GltfDocument) -> str:
    """Return a human-readable description of every part of ``document``."""
    tree = document.json
    asset = tree.get("asset", {})
    p1, p2 = _indent(1), _indent(2)
    lines = [
        "=== Dump glTF ===",
        f"asset.copyright          : {asset.get('copyright', '')}",
        f"asset.generator          : {asset.get('generator', '')}",
        f"asset.version            : {asset.get('version', '')}",
        f"asset.minVersion         : {asset.get('minVersion', '')}",
        "",
        "=== Dump scene ===",
        f"defaultScene: {tree.get('scene', -1)}",
        f"scenes(items={len(document.scenes)})",
    ]
    for index, scene in enumerate(document.scenes):
        lines.append(f"{p1}scene[{index}] name  : {scene.get('name', '')}")
        lines += _extensions(scene.get("extensions"), 1)

    lines.append(f"meshes(item={len(document.meshes)})")
    for mesh in document.meshes:
        primitives = mesh.get("primitives", [])
        lines.append(f"{p1}name     : {mesh.get('name', '')}")
        lines.append(f"{p1}primitives(items={len(primitives)}): ")
        for primitive in primitives:
            lines += _primitive(primitive, 2)

    for accessor in document.accessors:
        lines += _accessor(accessor)

    lines.append(f"animations(items={len(document.animations)})")
    for animation in document.animations:
        lines += _animation(animation)

    lines.append(f"bufferViews(items={len(document.buffer_views)})")
    for view in document.buffer_views:
        lines += [
            f"{p1}name         : {view.get('name', '')}",
            f"{p2}buffer       : {view.get('buffer', -1)}",
            f"{p2}byteLength   : {view.get('byteLength', 0)}",
            f"{p2}byteOffset   : {view.get('byteOffset', 0)}",
            f"{p2}byteStride   : {view.get('byteStride', 0)}",
            f"{p2}target       : {_TARGETS.get(view.get('target', 0), _UNKNOWN)}",
        ]

    buffers = document.section("buffers")
    lines.append(f"buffers(items={len(buffers)})")
    for index, buffer in enumerate(buffers):
        size = len(document.buffers[index]) if index < len(document.buffers) else 0
        lines.append(f"{p1}name         : {buffer.get('name', '')}")
        lines.append(f"{p2}byteLength   : {size}")

    lines.append(f"materials(items={len(document.materials)})")
    for material in document.materials:
        lines += _material(material)

    lines.append(f"nodes(items={len(document.nodes)})")
    for node in document.nodes:
        lines.append(f"{p1}name         : {node.get('name', '')}")
        lines += _node(node, 2)

    lines.append(f"images(items={len(document.images)})")
    for image in document.images:
        lines.append(f"{p1}name         : {image.get('name', '')}")
        lines.append(f"{p2}uri       : {image.get('uri', '')}")
        lines.append(f"{p2}mimeType  : {image.get('mimeType', '')}")
        lines += _extensions(image.get("extensions"), 1)

    lines.append(f"textures(items={len(document.textures)})")
    for texture in document.textures:
        lines.append(f"{p1}sampler        : {texture.get('sampler', -1)}")
        lines.append(f"{p1}source         : {texture.get('source', -1)}")
        lines += _extensions(texture.get("extensions"), 1)

    lines.append(f"samplers(items={len(document.samplers)})")
    for sampler in document.samplers:
        lines += [
            f"{p1}name (id)    : {sampler.get('name', '')}",
            f"{p2}minFilter    : {format_filter_mode(sampler.get('minFilter', -1))}",
            f"{p2}magFilter    : {format_filter_mode(sampler.get('magFilter', -1))}",
            f"{p2}wrapS        : {format_wrap_mode(sampler.get('wrapS', 10497))}",
            f"{p2}wrapT        : {format_wrap_mode(sampler.get('wrapT', 10497))}",
        ]

    lines.append(f"cameras(items={len(document.cameras)})")
    for camera in document.cameras:
        lines += _camera(camera)

    extensions = tree.get("extensions", {})
    lines.append(f"extensions(items={len(extensions)})")
    lines += _extensions(extensions, 1)
    return "\n".join(lines) + "\n"