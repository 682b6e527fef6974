"""Small linear algebra helpers used by NonUniformTransform.

Matrices follow the column-vector convention: a point ``p`` maps to
``M @ [x, y, z, 1]``, the translation lives in ``M[:3, 3]`` and the basis
vectors are the columns of ``M[:3, :3]``.

Quaternions are stored scalar-last ``(x, y, z, w)``, matching
``scipy.spatial.transform.Rotation.as_quat``.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial.transform import Rotation

RIGHT = np.array([1.0, 0.0, 0.0])
UP = np.array([0.0, 1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])

IDENTITY_QUAT = (0.0, 0.0, 0.0, 1.0)

_DEGENERATE_LENGTH = 1e-12


def as_vectors(values: ArrayLike) -> NDArray[np.float64]:
    """Coerce a single XYZ vector or an Nx3 batch to a float64 array.

    Raises:
        ValueError: If the last dimension is not 3
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim not in (1, 2) or arr.shape[-1] != 3:
        raise ValueError(f"Expected a 3-vector or Nx3 array, got shape {arr.shape}")
    return arr


def as_matrix4(matrix: ArrayLike) -> NDArray[np.float64]:
    """Coerce a 4x4 homogeneous matrix to a float64 array."""
    arr = np.asarray(matrix, dtype=np.float64)
    if arr.shape != (4, 4):
        raise ValueError(f"Expected a 4x4 matrix, got shape {arr.shape}")
    return arr


def to_rotation(quat: ArrayLike) -> Rotation:
    """Build a scipy Rotation from an ``(x, y, z, w)`` quaternion."""
    return Rotation.from_quat(np.asarray(quat, dtype=np.float64))


def quat_tuple(rotation: Rotation) -> tuple[float, float, float, float]:
    """Return the ``(x, y, z, w)`` quaternion of a scipy Rotation as floats."""
    x, y, z, w = rotation.as_quat()
    return (float(x), float(y), float(z), float(w))


def orthonormalize(basis: NDArray[np.float64]) -> NDArray[np.float64]:
    """Gram-Schmidt orthonormalise the columns of a 3x3 matrix.

    The first column keeps its direction, the second is made perpendicular
    to it, and the third is rebuilt as their cross product, so the result
    is always a proper rotation (shear and reflection are dropped).

    A zero first column becomes +X. A second column that is zero or
    parallel to the first is replaced by an axis perpendicular to it, so
    degenerate (zero scale) bases still yield a rotation.
    """
    x = basis[:, 0]
    x_norm = np.linalg.norm(x)
    x = RIGHT.copy() if x_norm < _DEGENERATE_LENGTH else x / x_norm

    y = basis[:, 1] - np.dot(basis[:, 1], x) * x
    y_norm = np.linalg.norm(y)
    if y_norm < _DEGENERATE_LENGTH:
        candidate = UP if abs(np.dot(x, UP)) < 0.9 else FORWARD
        y = candidate - np.dot(candidate, x) * x
        y_norm = np.linalg.norm(y)
    y = y / y_norm

    z = np.cross(x, y)
    return np.column_stack([x, y, z])


def column_lengths_sq(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Squared lengths of the three basis columns of a 4x4 matrix."""
    return np.sum(matrix[:3, :3] ** 2, axis=0)


def trs_matrix(
    position: ArrayLike,
    rotation: Rotation,
    scale: ArrayLike,
) -> NDArray[np.float64]:
    """Assemble the 4x4 matrix ``T @ R @ S``.

    Args:
        position: XYZ translation
        rotation: Rotation applied after scaling
        scale: Per-axis scale applied first

    Returns:
        4x4 transformation matrix
    """
    matrix = np.eye(4, dtype=np.float64)
    # Scaling the columns of R is R @ diag(scale)
    matrix[:3, :3] = rotation.as_matrix() * np.asarray(scale, dtype=np.float64)
    matrix[:3, 3] = position
    return matrix
