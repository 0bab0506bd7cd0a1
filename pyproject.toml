[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kdscene"
version = "0.1.0"
description = "glTF model loading, mesh data, materials, textures and strip polygons for a small 3D scene framework"
requires-python = ">=3.10"
keywords = ["gltf", "glb", "3d", "mesh", "animation", "skinning", "polygon", "texture"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Graphics :: 3D Modeling",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kdscene"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
