"""Base polygon: a vertex list and the material drawn on it."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from kdscene.material import Material
from kdscene.texture import Texture

MaterialSource = Union[Material, Texture, str, Path]


@dataclass
class PolygonVertex:
    """One vertex of a drawable polygon."""

    pos: tuple[float, float, float] = (0.0, 0.0, 0.0)
    uv: tuple[float, float] = (0.0, 0.0)
    color: int = 0xFFFFFFFF
    normal: tuple[float, float, float] = (0.0, 0.0, 1.0)
    tangent: tuple[float, float, float] = (-1.0, 0.0, 0.0)


class Polygon:
    """Common data of polygons: vertices, material and drawing flags."""

    def __init__(self, base_color: Optional[MaterialSource] = None) -> None:
        self.material: Optional[Material] = None
        self.vertices: list[PolygonVertex] = []
        self.enabled = True
        self.is_2d_object = True
        if base_color is not None:
            self.set_material(base_color)

    def positions(self) -> list[tuple[float, float, float]]:
        """Return a copy of the vertex positions."""
        return [vertex.pos for vertex in self.vertices]

    def set_material(self, source: MaterialSource) -> None:
        """Set the material directly, from a base colour texture, or from a file path.

        A file path ``dir/name.ext`` loads ``name.png`` as base colour and
        ``name_mtrf.png``, ``name_emi.png`` and ``name_nml.png`` from the same
        directory as metallic/roughness, emissive and normal maps.
        """
        if isinstance(source, Material):
            self.material = source
            return
        if isinstance(source, Texture):
            if not source.filepath:
                if self.material is None:
                    self.material = Material()
                self.material.set_textures(source, None, None, None)
            else:
                self.set_material(source.filepath)
            return

        path = str(source)
        if self.material is None:
            self.material = Material()
        self.material.name = path
        directory = os.path.dirname(path)
        stem = os.path.splitext(os.path.basename(path))[0]
        self.material.set_textures_from_files(
            directory,
            stem + ".png",
            stem + "_mtrf.png",
            stem + "_emi.png",
            stem + "_nml.png",
        )

    def set_color(self, color: Sequence[float]) -> None:
        """Set the base colour rate of the material, if there is one."""
        if self.material is not None:
            self.material.base_color_rate = tuple(float(c) for c in color[:4])