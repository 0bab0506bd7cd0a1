"""Reading glTF documents and typed values from their binary buffers."""

from __future__ import annotations

import base64
import binascii
import json
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union
from urllib.parse import unquote

_GLB_MAGIC = b"glTF"
_CHUNK_JSON = 0x4E4F534A
_CHUNK_BIN = 0x004E4942

COMPONENT_BYTE = 5120
COMPONENT_UNSIGNED_BYTE = 5121
COMPONENT_SHORT = 5122
COMPONENT_UNSIGNED_SHORT = 5123
COMPONENT_INT = 5124
COMPONENT_UNSIGNED_INT = 5125
COMPONENT_FLOAT = 5126

_FORMATS = {
    COMPONENT_BYTE: "b",
    COMPONENT_UNSIGNED_BYTE: "B",
    COMPONENT_SHORT: "h",
    COMPONENT_UNSIGNED_SHORT: "H",
    COMPONENT_INT: "i",
    COMPONENT_UNSIGNED_INT: "I",
    COMPONENT_FLOAT: "f",
}

_INTEGER_MAX = {
    COMPONENT_BYTE: 127,
    COMPONENT_UNSIGNED_BYTE: 255,
    COMPONENT_SHORT: 32767,
    COMPONENT_UNSIGNED_SHORT: 65535,
    COMPONENT_INT: 2147483647,
    COMPONENT_UNSIGNED_INT: 4294967295,
}


class GltfError(Exception):
    """Raised when a glTF document cannot be read or used."""


@dataclass
class GltfDocument:
    """A parsed glTF document: its JSON tree and the bytes of its buffers."""

    json: dict[str, Any]
    buffers: list[bytes] = field(default_factory=list)
    base_dir: str = ""

    def section(self, name: str) -> list[Any]:
        """Return a top-level array of the document, or an empty list."""
        value = self.json.get(name, [])
        return value if isinstance(value, list) else []

    @property
    def accessors(self) -> list[dict]:
        return self.section("accessors")

    @property
    def buffer_views(self) -> list[dict]:
        return self.section("bufferViews")

    @property
    def nodes(self) -> list[dict]:
        return self.section("nodes")

    @property
    def meshes(self) -> list[dict]:
        return self.section("meshes")

    @property
    def materials(self) -> list[dict]:
        return self.section("materials")

    @property
    def textures(self) -> list[dict]:
        return self.section("textures")

    @property
    def images(self) -> list[dict]:
        return self.section("images")

    @property
    def skins(self) -> list[dict]:
        return self.section("skins")

    @property
    def animations(self) -> list[dict]:
        return self.section("animations")

    @property
    def scenes(self) -> list[dict]:
        return self.section("scenes")

    @property
    def samplers(self) -> list[dict]:
        return self.section("samplers")

    @property
    def cameras(self) -> list[dict]:
        return self.section("cameras")


def file_extension(filename: str) -> str:
    """Return the text after the last dot of ``filename``, or an empty string."""
    _, dot, ext = filename.rpartition(".")
    return ext if dot else ""


def _load_uri(uri: str, base_dir: str) -> bytes:
    if uri.startswith("data:"):
        header, comma, payload = uri.partition(",")
        if not comma or not header.endswith(";base64"):
            raise GltfError(f"unsupported data URI: {header}")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise GltfError(f"invalid base64 data: {exc}") from exc
    path = Path(base_dir) / unquote(uri)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise GltfError(f"cannot read buffer file {path}: {exc}") from exc


def _load_buffers(tree: dict, base_dir: str, binary_chunk: bytes | None) -> list[bytes]:
    buffers = []
    for index, desc in enumerate(tree.get("buffers", [])):
        if "uri" in desc:
            data = _load_uri(desc["uri"], base_dir)
        elif index == 0 and binary_chunk is not None:
            data = binary_chunk
        else:
            raise GltfError(f"buffer {index} has no data")
        length = desc.get("byteLength", len(data))
        if len(data) < length:
            raise GltfError(
                f"buffer {index} holds {len(data)} bytes, expected {length}"
            )
        buffers.append(bytes(data[:length]))
    return buffers


def _parse_json(text: Union[str, bytes]) -> dict:
    try:
        tree = json.loads(text)
    except (ValueError, UnicodeDecodeError) as exc:
        raise GltfError(f"invalid glTF JSON: {exc}") from exc
    if not isinstance(tree, dict):
        raise GltfError("glTF JSON root is not an object")
    return tree


def parse_gltf(text: Union[str, bytes], base_dir: str = "") -> GltfDocument:
    """Parse an ASCII glTF document, loading its buffers relative to ``base_dir``."""
    tree = _parse_json(text)
    return GltfDocument(tree, _load_buffers(tree, base_dir, None), base_dir)


def parse_glb(data: bytes, base_dir: str = "") -> GltfDocument:
    """Parse a binary glTF (GLB) container."""
    if len(data) < 12:
        raise GltfError("GLB data too short")
    magic, version, length = struct.unpack_from("<4sII", data, 0)
    if magic != _GLB_MAGIC:
        raise GltfError("not a GLB file")
    if version != 2:
        raise GltfError(f"unsupported GLB version {version}")
    if length > len(data):
        raise GltfError("GLB data truncated")

    json_chunk: bytes | None = None
    binary_chunk: bytes | None = None
    offset = 12
    while offset + 8 <= length:
        chunk_length, chunk_type = struct.unpack_from("<II", data, offset)
        start = offset + 8
        end = start + chunk_length
        if end > length:
            raise GltfError("GLB chunk truncated")
        chunk = data[start:end]
        if json_chunk is None:
            if chunk_type != _CHUNK_JSON:
                raise GltfError("first GLB chunk is not JSON")
            json_chunk = chunk
        elif chunk_type == _CHUNK_BIN and binary_chunk is None:
            binary_chunk = chunk
        offset = end
    if json_chunk is None:
        raise GltfError("GLB has no JSON chunk")

    tree = _parse_json(json_chunk)
    return GltfDocument(tree, _load_buffers(tree, base_dir, binary_chunk), base_dir)


def load_gltf(path: Union[str, Path]) -> GltfDocument:
    """Load a ``.glb`` file as binary glTF, any other file as ASCII glTF."""
    path = Path(path)
    base_dir = str(path.parent)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise GltfError(f"cannot read {path}: {exc}") from exc
    if file_extension(str(path)) == "glb":
        return parse_glb(data, base_dir)
    return parse_gltf(data, base_dir)


class BufferGetter:
    """Reads the components of one accessor as typed values.

    Components are read tightly packed from the start of the accessor's data.
    """

    def __init__(self, document: GltfDocument, accessor: int) -> None:
        try:
            if accessor < 0:
                raise IndexError(accessor)
            self.accessor = document.accessors[accessor]
            view_index = self.accessor["bufferView"]
            self.buffer_view = document.buffer_views[view_index]
            self.buffer = document.buffers[self.buffer_view["buffer"]]
        except (IndexError, KeyError, TypeError) as exc:
            raise GltfError(f"accessor {accessor} cannot be resolved") from exc
        self.component_type: int = self.accessor.get("componentType", 0)
        self._offset = self.buffer_view.get("byteOffset", 0) + self.accessor.get(
            "byteOffset", 0
        )

    @property
    def count(self) -> int:
        return int(self.accessor.get("count", 0))

    @property
    def type(self) -> str:
        return str(self.accessor.get("type", ""))

    def _raw(self, index: int) -> Union[int, float]:
        fmt = _FORMATS.get(self.component_type)
        if fmt is None:
            raise GltfError(f"unsupported component type {self.component_type}")
        if index < 0:
            raise GltfError(f"negative component index {index}")
        size = struct.calcsize(fmt)
        try:
            return struct.unpack_from("<" + fmt, self.buffer, self._offset + index * size)[0]
        except struct.error as exc:
            raise GltfError(f"component {index} is outside the buffer") from exc

    def get_float(self, index: int) -> float:
        """Return a component as float; integers are divided by their type's maximum."""
        value = self._raw(index)
        if self.component_type == COMPONENT_FLOAT:
            return float(value)
        return value / _INTEGER_MAX[self.component_type]

    def get_int(self, index: int) -> int:
        """Return an integer component."""
        if self.component_type == COMPONENT_FLOAT:
            raise GltfError("float components cannot be read as integers")
        return int(self._raw(index))

    def get_unorm(self, index: int) -> float:
        """Return a normalized component; signed values are clamped at -1."""
        ctype = self.component_type
        if ctype in (COMPONENT_INT, COMPONENT_UNSIGNED_INT):
            raise GltfError(f"component type {ctype} cannot be normalized")
        value = self._raw(index)
        if ctype == COMPONENT_FLOAT:
            return float(value)
        normalized = value / _INTEGER_MAX[ctype]
        if ctype in (COMPONENT_BYTE, COMPONENT_SHORT):
            return max(normalized, -1.0)
        return normalized