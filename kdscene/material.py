"""Materials for shader drawing: textures and their scaling factors."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from kdscene.texture import Texture

_texture_cache: dict[str, Texture] = {}


def _shared_texture(path: str) -> Texture:
    key = os.path.normcase(os.path.abspath(path))
    texture = _texture_cache.get(key)
    if texture is None:
        texture = Texture(path)
        _texture_cache[key] = texture
    return texture


def _texture_from_file(file_dir: str, name: str) -> Optional[Texture]:
    if not name:
        return None
    path = os.path.join(file_dir, name) if file_dir else name
    if not os.path.isfile(path):
        return None
    return _shared_texture(path)


@dataclass
class Material:
    """Material data: base colour, metallic/roughness, emissive and normal map."""

    name: str = ""
    base_color_tex: Optional[Texture] = None
    base_color_rate: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    metallic_roughness_tex: Optional[Texture] = None
    metallic_rate: float = 0.0
    roughness_rate: float = 1.0
    emissive_tex: Optional[Texture] = None
    emissive_rate: tuple[float, float, float] = (1.0, 1.0, 1.0)
    normal_tex: Optional[Texture] = None

    def set_textures(
        self,
        base_color: Optional[Texture],
        metallic_roughness: Optional[Texture],
        emissive: Optional[Texture],
        normal: Optional[Texture],
    ) -> None:
        """Set all four textures; a metallic/roughness map resets both rates to 1."""
        self.base_color_tex = base_color
        self.metallic_roughness_tex = metallic_roughness
        self.emissive_tex = emissive
        self.normal_tex = normal
        if metallic_roughness is not None:
            self.metallic_rate = 1.0
            self.roughness_rate = 1.0

    def set_textures_from_files(
        self,
        file_dir: Union[str, Path],
        base_color_name: str,
        metallic_roughness_name: str,
        emissive_name: str,
        normal_name: str,
    ) -> None:
        """Load textures found in ``file_dir``; empty or missing names give no texture.

        Textures are shared: the same file yields the same texture object.
        """
        directory = str(file_dir)
        self.set_textures(
            _texture_from_file(directory, base_color_name),
            _texture_from_file(directory, metallic_roughness_name),
            _texture_from_file(directory, emissive_name),
            _texture_from_file(directory, normal_name),
        )