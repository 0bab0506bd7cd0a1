"""glTF model loading, meshes, materials, textures and trail polygons for a small 3D scene framework."""

__version__ = "0.1.0"

__all__ = [
    "gltf_accessor",
    "gltf_animation",
    "gltf_dump",
    "gltf_loader",
    "linalg",
    "material",
    "mesh",
    "model",
    "polygon",
    "texture",
    "trail_polygon",
]