"""Small 4x4 matrix helpers using the row-vector convention (v' = v @ M)."""

from __future__ import annotations

from typing import Sequence

import numpy as np

Matrix = np.ndarray


def identity() -> Matrix:
    """Return a 4x4 identity matrix."""
    return np.eye(4, dtype=np.float64)


def scale_matrix(x: float, y: float, z: float) -> Matrix:
    """Return a matrix scaling by (x, y, z)."""
    return np.diag([float(x), float(y), float(z), 1.0])


def translation_matrix(x: float, y: float, z: float) -> Matrix:
    """Return a matrix translating by (x, y, z); the offset lives in the last row."""
    mat = identity()
    mat[3, :3] = (x, y, z)
    return mat


def quaternion_matrix(x: float, y: float, z: float, w: float) -> Matrix:
    """Return the rotation matrix of the quaternion (x, y, z, w)."""
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    xw, yw, zw = x * w, y * w, z * w
    mat = identity()
    mat[0, :3] = (1.0 - 2.0 * (yy + zz), 2.0 * (xy + zw), 2.0 * (xz - yw))
    mat[1, :3] = (2.0 * (xy - zw), 1.0 - 2.0 * (xx + zz), 2.0 * (yz + xw))
    mat[2, :3] = (2.0 * (xz + yw), 2.0 * (yz - xw), 1.0 - 2.0 * (xx + yy))
    return mat


def mirror_z(matrix: Matrix) -> Matrix:
    """Return a copy of ``matrix`` mirrored along the Z axis.

    The rotation part has its Z row/column cross terms negated and the
    translation has its Z component negated.
    """
    mat = np.array(matrix, dtype=np.float64, copy=True)
    for row, col in ((0, 2), (1, 2), (2, 0), (2, 1), (3, 2)):
        mat[row, col] = -mat[row, col]
    return mat


def translation(matrix: Matrix) -> np.ndarray:
    """Return the translation part of ``matrix`` as a 3-vector."""
    return np.array(matrix, dtype=np.float64)[3, :3].copy()


def normalize(vector: Sequence[float]) -> np.ndarray:
    """Return ``vector`` scaled to unit length; a zero vector is returned as is."""
    vec = np.asarray(vector, dtype=np.float64)
    length = float(np.linalg.norm(vec))
    if length == 0.0:
        return vec.copy()
    return vec / length