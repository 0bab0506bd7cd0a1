"""Mesh data: vertices, faces, material subsets and bounding volumes."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

Vec2 = tuple[float, float]
Vec3 = tuple[float, float, float]


def _saturate_byte(value: float) -> int:
    value = min(max(float(value), 0.0), 1.0)
    return int(round(value * 255.0))


def pack_rgba(r: float, g: float, b: float, a: float) -> int:
    """Pack a colour with components in [0, 1] into a 32-bit RGBA integer.

    Red occupies the lowest byte and alpha the highest.
    """
    return (
        (_saturate_byte(a) << 24)
        | (_saturate_byte(b) << 16)
        | (_saturate_byte(g) << 8)
        | _saturate_byte(r)
    )


@dataclass
class MeshVertex:
    """One vertex of a mesh."""

    pos: Vec3 = (0.0, 0.0, 0.0)
    uv: Vec2 = (0.0, 0.0)
    color: int = 0xFFFFFFFF
    normal: Vec3 = (0.0, 0.0, 0.0)
    tangent: Vec3 = (0.0, 0.0, 0.0)
    skin_index_list: tuple[int, int, int, int] = (0, 0, 0, 0)
    skin_weight_list: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)


@dataclass
class MeshFace:
    """A triangle given by three vertex indices."""

    idx: tuple[int, int, int] = (0, 0, 0)


@dataclass
class MeshSubset:
    """A run of faces drawn with one material."""

    material_no: int = 0
    face_start: int = 0
    face_count: int = 0


@dataclass
class BoundingBox:
    """Axis-aligned bounding box given by centre and half extents."""

    center: Vec3 = (0.0, 0.0, 0.0)
    extents: Vec3 = (1.0, 1.0, 1.0)

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> "BoundingBox":
        """Return the smallest box that holds every point."""
        pts = [tuple(map(float, p[:3])) for p in points]
        if not pts:
            raise ValueError("cannot build a bounding box from no points")
        lo = [min(p[i] for p in pts) for i in range(3)]
        hi = [max(p[i] for p in pts) for i in range(3)]
        center = tuple((lo[i] + hi[i]) * 0.5 for i in range(3))
        extents = tuple((hi[i] - lo[i]) * 0.5 for i in range(3))
        return cls(center, extents)

    def contains(self, point: Sequence[float], eps: float = 1e-6) -> bool:
        """Tell whether ``point`` lies inside the box."""
        return all(
            abs(float(point[i]) - self.center[i]) <= self.extents[i] + eps for i in range(3)
        )


@dataclass
class BoundingSphere:
    """Bounding sphere given by centre and radius."""

    center: Vec3 = (0.0, 0.0, 0.0)
    radius: float = 1.0

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> "BoundingSphere":
        """Return a sphere holding every point.

        Starts from the widest pair of axis-extreme points and grows the
        sphere for each point left outside it.
        """
        pts = [tuple(map(float, p[:3])) for p in points]
        if not pts:
            raise ValueError("cannot build a bounding sphere from no points")

        extremes = []
        for axis in range(3):
            extremes.append(
                (min(pts, key=lambda p: p[axis]), max(pts, key=lambda p: p[axis]))
            )
        low, high = max(extremes, key=lambda pair: math.dist(pair[0], pair[1]))

        center = [(low[i] + high[i]) * 0.5 for i in range(3)]
        radius = math.dist(low, high) * 0.5

        for p in pts:
            dist = math.dist(p, center)
            if dist > radius:
                new_radius = (radius + dist) * 0.5
                offset = (new_radius - radius) / dist
                center = [center[i] + (p[i] - center[i]) * offset for i in range(3)]
                radius = new_radius

        return cls(tuple(center), radius)

    def contains(self, point: Sequence[float], eps: float = 1e-6) -> bool:
        """Tell whether ``point`` lies inside the sphere."""
        return math.dist(tuple(map(float, point[:3])), self.center) <= self.radius + eps


@dataclass
class Mesh:
    """Mesh geometry with material subsets and bounding volumes."""

    vertices: list[MeshVertex] = field(default_factory=list)
    faces: list[MeshFace] = field(default_factory=list)
    subsets: list[MeshSubset] = field(default_factory=list)
    positions: list[Vec3] = field(default_factory=list)
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    bounding_sphere: BoundingSphere = field(default_factory=BoundingSphere)
    is_skin_mesh: bool = False

    def create(
        self,
        vertices: Sequence[MeshVertex],
        faces: Sequence[MeshFace],
        subsets: Sequence[MeshSubset],
        is_skin_mesh: bool,
    ) -> None:
        """Fill the mesh from vertex, face and subset lists."""
        self.release()
        self.subsets = list(subsets)

        if vertices:
            self.vertices = list(vertices)
            self.positions = [tuple(v.pos) for v in self.vertices]
            self.bounding_box = BoundingBox.from_points(self.positions)
            self.bounding_sphere = BoundingSphere.from_points(self.positions)

        if faces:
            self.faces = list(faces)

        self.is_skin_mesh = is_skin_mesh

    def release(self) -> None:
        """Drop the geometry and subsets."""
        self.vertices = []
        self.subsets = []
        self.positions = []
        self.faces = []

    def subset_draw_range(self, subset_no: int) -> Optional[tuple[int, int]]:
        """Return (index count, start index) for a subset, or None if nothing to draw."""
        if subset_no < 0 or subset_no >= len(self.subsets):
            return None
        subset = self.subsets[subset_no]
        if subset.face_count == 0:
            return None
        return subset.face_count * 3, subset.face_start * 3