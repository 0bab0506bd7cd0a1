"""Image textures loaded from files or created blank."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError


class TextureError(Exception):
    """Raised when an image cannot be loaded as a texture."""


def _mip_chain(image: Image.Image) -> list[Image.Image]:
    chain = [image]
    width, height = image.size
    while width > 1 or height > 1:
        width, height = max(1, width // 2), max(1, height // 2)
        chain.append(chain[-1].resize((width, height), Image.Resampling.BOX))
    return chain


class Texture:
    """A 2D texture: pixel data, its size, mip levels and source path."""

    def __init__(self, filename: Optional[Union[str, Path]] = None) -> None:
        self.image: Optional[Image.Image] = None
        self.mipmaps: list[Image.Image] = []
        self.width = 0
        self.height = 0
        self.array_size = 0
        self.filepath = ""
        if filename is not None:
            self.load(filename)

    @property
    def is_loaded(self) -> bool:
        """Tell whether the texture holds pixel data."""
        return self.image is not None

    @property
    def mip_levels(self) -> int:
        """Number of mip levels held."""
        return len(self.mipmaps)

    def load(self, filename: Union[str, Path]) -> None:
        """Load an image file and build its full mip chain.

        Animated images keep their frame count as the array size.
        """
        self.release()
        name = str(filename)
        if not name:
            raise ValueError("empty texture filename")
        try:
            with Image.open(name) as source:
                frames = int(getattr(source, "n_frames", 1))
                image = source.convert("RGBA")
        except FileNotFoundError as exc:
            raise TextureError(f"texture file not found: {name}") from exc
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise TextureError(f"cannot load texture {name}: {exc}") from exc

        self.image = image
        self.mipmaps = _mip_chain(image)
        self.width, self.height = image.size
        self.array_size = frames
        self.filepath = name

    def create(self, width: int, height: int) -> None:
        """Create a blank RGBA texture with a single mip level."""
        self.release()
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid texture size {width}x{height}")
        self.image = Image.new("RGBA", (int(width), int(height)))
        self.mipmaps = [self.image]
        self.width, self.height = int(width), int(height)
        self.array_size = 1
        self.filepath = ""

    def release(self) -> None:
        """Drop the pixel data and forget the source path."""
        self.image = None
        self.mipmaps = []
        self.width = 0
        self.height = 0
        self.array_size = 0
        self.filepath = ""

    def aspect_ratio(self) -> float:
        """Return width divided by height."""
        if self.height == 0:
            raise ValueError("texture has no height")
        return self.width / self.height