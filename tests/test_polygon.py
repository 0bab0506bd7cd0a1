from PIL import Image

from kdscene.material import Material
from kdscene.polygon import Polygon, PolygonVertex
from kdscene.texture import Texture


def test_vertex_defaults():
    vertex = PolygonVertex()
    assert vertex.color == 0xFFFFFFFF
    assert vertex.normal == (0.0, 0.0, 1.0)
    assert vertex.tangent == (-1.0, 0.0, 0.0)


def test_positions_copies_vertex_positions():
    polygon = Polygon()
    polygon.vertices = [PolygonVertex(pos=(1.0, 2.0, 3.0)), PolygonVertex(pos=(4.0, 5.0, 6.0))]
    positions = polygon.positions()
    assert positions == [(1.0, 2.0, 3.0), (4.0, 5.0, 6.0)]
    positions.clear()
    assert len(polygon.positions()) == 2


def test_new_polygon_has_no_material():
    polygon = Polygon()
    assert polygon.material is None
    assert polygon.enabled and polygon.is_2d_object


def test_set_material_directly():
    material = Material(name="m")
    polygon = Polygon(material)
    assert polygon.material is material


def test_set_material_from_blank_texture():
    texture = Texture()
    texture.create(4, 4)
    polygon = Polygon(texture)
    assert polygon.material.base_color_tex is texture
    assert polygon.material.metallic_roughness_tex is None


def test_set_material_from_path_loads_companion_files(tmp_path):
    Image.new("RGBA", (2, 2)).save(tmp_path / "wall.png")
    Image.new("RGBA", (2, 2)).save(tmp_path / "wall_nml.png")
    path = str(tmp_path / "wall.png")
    polygon = Polygon(path)
    material = polygon.material
    assert material.name == path
    assert material.base_color_tex.width == 2
    assert material.normal_tex is not None and material.normal_tex.height == 2
    assert material.emissive_tex is None
    assert material.metallic_roughness_tex is None


def test_set_material_from_loaded_texture_uses_its_path(tmp_path):
    Image.new("RGBA", (3, 1)).save(tmp_path / "tile.png")
    texture = Texture(tmp_path / "tile.png")
    polygon = Polygon(texture)
    assert polygon.material.name == texture.filepath
    assert polygon.material.base_color_tex.width == 3


def test_set_color_without_material_does_nothing():
    polygon = Polygon()
    polygon.set_color((0.5, 0.5, 0.5, 1.0))
    assert polygon.material is None


def test_set_color_sets_base_rate():
    polygon = Polygon(Material())
    polygon.set_color((0.1, 0.2, 0.3, 0.4))
    assert polygon.material.base_color_rate == (0.1, 0.2, 0.3, 0.4)