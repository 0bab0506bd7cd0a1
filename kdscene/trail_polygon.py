"""A strip polygon following a list of matrices, newest first."""

from __future__ import annotations

import enum
from collections import deque
from typing import Optional

import numpy as np

from kdscene.linalg import identity, translation
from kdscene.polygon import MaterialSource, Polygon, PolygonVertex


class TrailPattern(enum.Enum):
    """How the strip vertices are built from the points."""

    DEFAULT = enum.auto()
    BILLBOARD = enum.auto()
    VERTICES = enum.auto()


def _unit(vector: np.ndarray) -> np.ndarray:
    length = float(np.linalg.norm(vector))
    return vector / length if length > 0.0 else vector


def _pos(vector: np.ndarray) -> tuple[float, float, float]:
    return tuple(float(c) for c in vector[:3])


class TrailPolygon(Polygon):
    """Strip polygon joining the points added with :meth:`add_point`."""

    def __init__(self, base_color: Optional[MaterialSource] = None) -> None:
        super().__init__(base_color)
        self.pattern = TrailPattern.DEFAULT
        self.length = 20
        self.camera_matrix = identity()
        self._points: deque[np.ndarray] = deque()

    def top_point(self) -> Optional[np.ndarray]:
        """Return the newest point, or None."""
        return self._points[0] if self._points else None

    def add_point(self, matrix) -> None:
        """Add a point in front, dropping the oldest beyond the length."""
        self._points.appendleft(np.array(matrix, dtype=np.float64))
        if len(self._points) > self.length:
            self._points.pop()
        self.generate_vertices()

    def delete_point_back(self) -> None:
        """Remove the oldest point."""
        if not self._points:
            raise IndexError("trail has no points")
        self._points.pop()
        self.generate_vertices()

    def clear_points(self) -> None:
        """Remove every point; the vertices are kept until regenerated."""
        self._points.clear()

    def num_points(self) -> int:
        return len(self._points)

    def set_pattern(self, pattern: TrailPattern) -> None:
        """Change the pattern and rebuild the vertices."""
        if self.pattern == pattern:
            return
        self.pattern = pattern
        self.generate_vertices()

    def set_length(self, length: int) -> None:
        """Set how many points the trail keeps."""
        self.length = int(length)

    def set_camera_matrix(self, matrix) -> None:
        """Set the camera world matrix used by the billboard pattern."""
        self.camera_matrix = np.array(matrix, dtype=np.float64)

    def generate_vertices(self) -> None:
        """Rebuild the vertices from the points by the current pattern."""
        builders = {
            TrailPattern.DEFAULT: self._default_vertices,
            TrailPattern.BILLBOARD: self._billboard_vertices,
            TrailPattern.VERTICES: self._point_vertices,
        }
        self.vertices = builders[self.pattern]()

    def _strip(self, axes: list[np.ndarray]) -> list[PolygonVertex]:
        slices = float(len(self._points) - 1)
        vertices = []
        for i, (mat, axis) in enumerate(zip(self._points, axes)):
            width = float(np.linalg.norm(mat[0, :3])) * 0.5
            center = np.asarray(translation(mat), dtype=np.float64)
            offset = _unit(axis) * width * 0.5
            uv_y = i / slices
            vertices.append(PolygonVertex(pos=_pos(center + offset), uv=(0.0, uv_y)))
            vertices.append(PolygonVertex(pos=_pos(center - offset), uv=(1.0, uv_y)))
        return vertices

    def _default_vertices(self) -> list[PolygonVertex]:
        if len(self._points) < 2:
            return []
        return self._strip([mat[0, :3].copy() for mat in self._points])

    def _billboard_vertices(self) -> list[PolygonVertex]:
        if len(self._points) < 2:
            return []
        cam = np.asarray(translation(self.camera_matrix), dtype=np.float64)
        points = [np.asarray(translation(mat), dtype=np.float64) for mat in self._points]
        axes = []
        for i, pos in enumerate(points):
            direction = points[1] - pos if i == 0 else pos - points[i - 1]
            axes.append(np.cross(direction, pos - cam))
        return self._strip(axes)

    def _point_vertices(self) -> list[PolygonVertex]:
        count = len(self._points)
        if count < 4:
            return []
        slices = count * 0.5
        return [
            PolygonVertex(
                pos=_pos(np.asarray(translation(mat), dtype=np.float64)),
                uv=(float(i % 2), min(max((i * 0.5) / slices, 0.0), 0.99)),
            )
            for i, mat in enumerate(self._points)
        ]