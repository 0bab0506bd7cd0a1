import base64
import json
import struct

import pytest

from kdscene.gltf_accessor import (
    BufferGetter,
    GltfDocument,
    GltfError,
    file_extension,
    load_gltf,
    parse_glb,
    parse_gltf,
)


def _single(component_type, fmt, values, type_name="SCALAR", view_offset=0, acc_offset=0):
    payload = b"\0" * (view_offset + acc_offset) + struct.pack("<" + fmt * len(values), *values)
    tree = {
        "buffers": [{"byteLength": len(payload)}],
        "bufferViews": [{"buffer": 0, "byteOffset": view_offset}],
        "accessors": [
            {
                "bufferView": 0,
                "byteOffset": acc_offset,
                "componentType": component_type,
                "count": len(values),
                "type": type_name,
            }
        ],
    }
    return GltfDocument(tree, [payload])


def _glb(tree, binary):
    js = json.dumps(tree).encode()
    js += b" " * (-len(js) % 4)
    binary += b"\0" * (-len(binary) % 4)
    body = struct.pack("<II", len(js), 0x4E4F534A) + js
    body += struct.pack("<II", len(binary), 0x004E4942) + binary
    return struct.pack("<4sII", b"glTF", 2, 12 + len(body)) + body


def test_file_extension():
    assert file_extension("dir/model.glb") == "glb"
    assert file_extension("archive.tar.gz") == "gz"
    assert file_extension("noext") == ""


def test_float_components_round_trip():
    getter = BufferGetter(_single(5126, "f", [1.5, -2.25, 0.0]), 0)
    assert [getter.get_float(i) for i in range(3)] == [1.5, -2.25, 0.0]
    assert getter.get_unorm(1) == -2.25
    assert getter.count == 3


def test_integer_floats_are_normalized_by_type_max():
    assert BufferGetter(_single(5121, "B", [255]), 0).get_float(0) == 1.0
    assert BufferGetter(_single(5120, "b", [127]), 0).get_float(0) == 1.0
    assert BufferGetter(_single(5123, "H", [0]), 0).get_float(0) == 0.0
    assert BufferGetter(_single(5125, "I", [4294967295]), 0).get_float(0) == 1.0


def test_get_int_round_trip():
    values = [0, 7, 65535]
    getter = BufferGetter(_single(5123, "H", values), 0)
    assert [getter.get_int(i) for i in range(3)] == values


def test_get_int_rejects_float():
    with pytest.raises(GltfError):
        BufferGetter(_single(5126, "f", [1.0]), 0).get_int(0)


def test_unorm_clamps_signed_minimum():
    assert BufferGetter(_single(5120, "b", [-128]), 0).get_unorm(0) == -1.0
    assert BufferGetter(_single(5122, "h", [-32768]), 0).get_unorm(0) == -1.0
    assert BufferGetter(_single(5121, "B", [255]), 0).get_unorm(0) == 1.0


def test_unorm_rejects_32bit_integers():
    with pytest.raises(GltfError):
        BufferGetter(_single(5125, "I", [1]), 0).get_unorm(0)


def test_offsets_are_applied():
    getter = BufferGetter(_single(5123, "H", [11, 22], view_offset=4, acc_offset=8), 0)
    assert getter.get_int(0) == 11
    assert getter.get_int(1) == 22


def test_out_of_range_reads_raise():
    getter = BufferGetter(_single(5126, "f", [1.0]), 0)
    with pytest.raises(GltfError):
        getter.get_float(5)
    with pytest.raises(GltfError):
        BufferGetter(_single(5126, "f", [1.0]), 3)


def test_parse_gltf_data_uri():
    payload = struct.pack("<3f", 1.0, 2.0, 3.0)
    uri = "data:application/octet-stream;base64," + base64.b64encode(payload).decode()
    tree = {
        "buffers": [{"uri": uri, "byteLength": len(payload)}],
        "bufferViews": [{"buffer": 0}],
        "accessors": [{"bufferView": 0, "componentType": 5126, "count": 1, "type": "VEC3"}],
    }
    doc = parse_gltf(json.dumps(tree))
    getter = BufferGetter(doc, 0)
    assert [getter.get_float(i) for i in range(3)] == [1.0, 2.0, 3.0]
    assert getter.type == "VEC3"


def test_parse_gltf_invalid_json():
    with pytest.raises(GltfError):
        parse_gltf("{not json")


def test_parse_glb_round_trip():
    payload = struct.pack("<2H", 5, 9)
    tree = {
        "buffers": [{"byteLength": len(payload)}],
        "bufferViews": [{"buffer": 0}],
        "accessors": [{"bufferView": 0, "componentType": 5123, "count": 2, "type": "SCALAR"}],
    }
    doc = parse_glb(_glb(tree, payload))
    assert doc.buffers[0] == payload
    assert BufferGetter(doc, 0).get_int(1) == 9


def test_parse_glb_bad_magic():
    with pytest.raises(GltfError):
        parse_glb(b"XXXX" + b"\0" * 20)


def test_load_gltf_chooses_parser(tmp_path):
    payload = struct.pack("<f", 4.0)
    (tmp_path / "data.bin").write_bytes(payload)
    tree = {
        "buffers": [{"uri": "data.bin", "byteLength": 4}],
        "bufferViews": [{"buffer": 0}],
        "accessors": [{"bufferView": 0, "componentType": 5126, "count": 1, "type": "SCALAR"}],
    }
    (tmp_path / "a.gltf").write_text(json.dumps(tree))
    assert BufferGetter(load_gltf(tmp_path / "a.gltf"), 0).get_float(0) == 4.0

    glb_tree = dict(tree, buffers=[{"byteLength": 4}])
    (tmp_path / "b.glb").write_bytes(_glb(glb_tree, payload))
    assert BufferGetter(load_gltf(tmp_path / "b.glb"), 0).get_float(0) == 4.0


def test_load_gltf_missing_file(tmp_path):
    with pytest.raises(GltfError):
        load_gltf(tmp_path / "missing.gltf")