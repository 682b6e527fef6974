"""Non-uniform affine transform for placing objects in 3D space.

Provides NonUniformTransform, an immutable position + rotation + per-axis
scale value, with point/direction transforms, parent-child composition,
inversion and conversion to and from 4x4 homogeneous matrices.
"""

from __future__ import annotations

import logging
from typing import Any, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray
from pydantic import BaseModel, Field, field_validator
from scipy.spatial.transform import Rotation

from ..core.config import get_settings
from .errors import InvalidTransformError, NonInvertibleTransformError
from .linalg import (
    FORWARD,
    IDENTITY_QUAT,
    RIGHT,
    UP,
    as_matrix4,
    as_vectors,
    column_lengths_sq,
    orthonormalize,
    quat_tuple,
    to_rotation,
    trs_matrix,
)

logger = logging.getLogger(__name__)

Vector3 = tuple[float, float, float]
Quaternion = tuple[float, float, float, float]
RotationLike = Union[Rotation, ArrayLike]

_UNIT_TOLERANCE = 1e-12


def _as_rotation(rotation: RotationLike) -> Rotation:
    if isinstance(rotation, Rotation):
        return rotation
    return to_rotation(rotation)


def _position_args(x: Any, y: Any, z: Any) -> Any:
    if y is None and z is None:
        return x
    if y is None or z is None:
        raise ValueError("Position takes a single vector or all three of x, y and z")
    return (x, y, z)


def _format_values(values: tuple[float, ...], precision: int) -> str:
    return "(" + ", ".join(f"{v:.{precision}f}" for v in values) + ")"


class NonUniformTransform(BaseModel):
    """3D transformation: position + rotation + per-axis scale.

    Points are scaled first, then rotated, then translated (TRS order).
    Instances are frozen; every operation returns a new transform.

    Attributes:
        position: XYZ translation relative to the parent frame
        rotation: Unit quaternion (x, y, z, w)
        scale: Per-axis scale factors
    """

    position: Vector3 = Field(
        default=(0.0, 0.0, 0.0),
        description="XYZ translation",
    )
    rotation: Quaternion = Field(
        default=IDENTITY_QUAT,
        description="Unit quaternion (x, y, z, w)",
    )
    scale: Vector3 = Field(
        default=(1.0, 1.0, 1.0),
        description="Per-axis scale factors",
    )

    model_config = {"frozen": True}

    @field_validator("position", mode="before")
    @classmethod
    def _coerce_position(cls, value: Any) -> Vector3:
        arr = np.asarray(value, dtype=np.float64)
        if arr.shape != (3,):
            raise ValueError(f"Position must have 3 components, got shape {arr.shape}")
        return tuple(arr.tolist())

    @field_validator("scale", mode="before")
    @classmethod
    def _coerce_scale(cls, value: Any) -> Vector3:
        arr = np.asarray(value, dtype=np.float64)
        if arr.shape not in ((), (3,)):
            raise ValueError(f"Scale must be a scalar or have 3 components, got shape {arr.shape}")
        return tuple(np.broadcast_to(arr, (3,)).tolist())

    @field_validator("rotation", mode="before")
    @classmethod
    def _coerce_rotation(cls, value: Any) -> Quaternion:
        if isinstance(value, Rotation):
            return quat_tuple(value)
        arr = np.asarray(value, dtype=np.float64)
        if arr.shape != (4,):
            raise ValueError(f"Rotation must be a quaternion (x, y, z, w), got shape {arr.shape}")
        norm = np.linalg.norm(arr)
        if not np.isfinite(norm) or norm == 0.0:
            raise ValueError(f"Rotation quaternion must have finite nonzero length, got {arr.tolist()}")
        # Already-unit input is kept as is so copies compare equal
        if abs(norm - 1.0) > _UNIT_TOLERANCE:
            arr = arr / norm
        return tuple(arr.tolist())

    # -- construction -------------------------------------------------------

    @classmethod
    def identity(cls) -> NonUniformTransform:
        """Return the identity transform."""
        return IDENTITY

    @classmethod
    def from_matrix(cls, matrix: ArrayLike) -> NonUniformTransform:
        """Create a transform from a 4x4 homogeneous matrix.

        If the matrix contains non-uniform scale, the largest axis length is
        used for all three axes. Shear is dropped by orthonormalising the
        linear block, and a reflected block comes back as a proper rotation.
        Zero-length axes are replaced by perpendicular unit axes, so a
        zero-scale matrix decomposes with scale 0. Use from_matrix_safe
        when information loss must be detected.

        Args:
            matrix: 4x4 transformation matrix

        Returns:
            NonUniformTransform with uniform scale
        """
        m = as_matrix4(matrix)
        lengths = np.sqrt(column_lengths_sq(m))
        scale = float(lengths.max())
        if not np.allclose(lengths, scale):
            logger.debug(f"Non-uniform axis lengths {lengths} collapsed to scale {scale:.6g}")

        rotation = Rotation.from_matrix(orthonormalize(m[:3, :3]))
        return cls(position=m[:3, 3], rotation=rotation, scale=scale)

    @classmethod
    def from_matrix_safe(
        cls,
        matrix: ArrayLike,
        tolerance: float | None = None,
    ) -> NonUniformTransform:
        """Create a transform from a 4x4 matrix, rejecting lossy input.

        Both checks compare squared quantities against ``tolerance ** 2``.

        Args:
            matrix: 4x4 transformation matrix
            tolerance: Validation tolerance (defaults to the active settings)

        Returns:
            NonUniformTransform with uniform scale

        Raises:
            InvalidTransformError: If the axis lengths differ
                (reason ``"non_uniform_scale"``) or the linear block is not
                a scaled proper rotation, such as shear, a reflection or a
                zero block (reason ``"non_orthogonal"``)
        """
        if tolerance is None:
            tolerance = get_settings().decomposition_tolerance
        tolerance_sq = tolerance * tolerance

        m = as_matrix4(matrix)
        lengths_sq = column_lengths_sq(m)
        if (
            abs(lengths_sq[0] - lengths_sq[1]) > tolerance_sq
            or abs(lengths_sq[0] - lengths_sq[2]) > tolerance_sq
        ):
            lengths = np.sqrt(lengths_sq)
            logger.debug(f"Rejected matrix with axis lengths {lengths}")
            raise InvalidTransformError(
                "non_uniform_scale",
                f"Matrix contains non-uniform scaling: X={lengths[0]:.4f}, "
                f"Y={lengths[1]:.4f}, Z={lengths[2]:.4f}",
            )

        scale = float(np.sqrt(lengths_sq[0]))
        if scale == 0.0:
            raise InvalidTransformError(
                "non_orthogonal",
                "Matrix linear block is zero and has no rotation",
            )

        # A scaled rotation satisfies B @ B.T == I once the scale is divided out
        basis = m[:3, :3] / scale
        residual = np.sum((basis @ basis.T - np.eye(3)) ** 2, axis=0)
        if np.any(residual > tolerance_sq):
            logger.debug(f"Rejected matrix with orthogonality residual {residual}")
            raise InvalidTransformError(
                "non_orthogonal",
                "Matrix linear block is not orthogonal (contains shear)",
            )
        if np.linalg.det(basis) < 0:
            logger.debug("Rejected matrix with negative determinant")
            raise InvalidTransformError(
                "non_orthogonal",
                "Matrix contains a reflection (negative determinant)",
            )

        rotation = Rotation.from_matrix(orthonormalize(m[:3, :3]))
        return cls(position=m[:3, 3], rotation=rotation, scale=scale)

    @classmethod
    def from_position_rotation(
        cls, position: ArrayLike, rotation: RotationLike
    ) -> NonUniformTransform:
        """Create a transform with the given position and rotation. Scale will be 1."""
        return cls(position=position, rotation=rotation)

    @classmethod
    def from_position_rotation_scale(
        cls, position: ArrayLike, rotation: RotationLike, scale: ArrayLike
    ) -> NonUniformTransform:
        """Create a transform with the given position, rotation and scale."""
        return cls(position=position, rotation=rotation, scale=scale)

    @classmethod
    def from_position(
        cls, x: ArrayLike, y: float | None = None, z: float | None = None
    ) -> NonUniformTransform:
        """Create a translation-only transform.

        Accepts either a single XYZ vector or three scalars.
        """
        return cls(position=_position_args(x, y, z))

    @classmethod
    def from_rotation(cls, rotation: RotationLike) -> NonUniformTransform:
        """Create a rotation-only transform."""
        return cls(rotation=rotation)

    @classmethod
    def from_scale(cls, scale: ArrayLike) -> NonUniformTransform:
        """Create a scale-only transform."""
        return cls(scale=scale)

    # -- helpers -------------------------------------------------------------

    def _rotation(self) -> Rotation:
        return to_rotation(self.rotation)

    def _divide_by_scale(self, values: NDArray[np.float64]) -> NDArray[np.float64]:
        scale = np.asarray(self.scale)
        if np.any(scale == 0.0):
            if get_settings().strict_inverse:
                raise NonInvertibleTransformError(
                    f"Transform with zero scale {self.scale} has no inverse"
                )
            with np.errstate(divide="ignore", invalid="ignore"):
                return values / scale
        return values / scale

    def _replace(self, **changes: Any) -> NonUniformTransform:
        fields = {"position": self.position, "rotation": self.rotation, "scale": self.scale}
        fields.update(changes)
        return type(self)(**fields)

    # -- point, direction, rotation and scale transforms ---------------------

    def transform_point(self, point: ArrayLike) -> NDArray[np.float64]:
        """Transform a point (or Nx3 points) from local to parent space."""
        p = as_vectors(point)
        return np.asarray(self.position) + self._rotation().apply(p * np.asarray(self.scale))

    def inverse_transform_point(self, point: ArrayLike) -> NDArray[np.float64]:
        """Transform a point (or Nx3 points) from parent to local space.

        Raises:
            NonInvertibleTransformError: If a scale component is zero and
                strict inverse checking is enabled
        """
        p = as_vectors(point)
        local = self._rotation().inv().apply(p - np.asarray(self.position))
        return self._divide_by_scale(local)

    def transform_direction(self, direction: ArrayLike) -> NDArray[np.float64]:
        """Rotate a direction. Scale and position do not apply to directions."""
        return self._rotation().apply(as_vectors(direction))

    def inverse_transform_direction(self, direction: ArrayLike) -> NDArray[np.float64]:
        """Rotate a direction by the inverse rotation."""
        return self._rotation().inv().apply(as_vectors(direction))

    def transform_rotation(self, rotation: RotationLike) -> Quaternion:
        """Compose a rotation: ``self.rotation * rotation``."""
        return quat_tuple(self._rotation() * _as_rotation(rotation))

    def inverse_transform_rotation(self, rotation: RotationLike) -> Quaternion:
        """Compose a rotation with the inverse: ``conj(self.rotation) * rotation``."""
        return quat_tuple(self._rotation().inv() * _as_rotation(rotation))

    def transform_scale(self, scale: ArrayLike) -> NDArray[np.float64]:
        """Multiply a scale by this transform's scale."""
        return np.asarray(scale, dtype=np.float64) * np.asarray(self.scale)

    def inverse_transform_scale(self, scale: ArrayLike) -> NDArray[np.float64]:
        """Divide a scale by this transform's scale.

        Raises:
            NonInvertibleTransformError: If a scale component is zero and
                strict inverse checking is enabled
        """
        return self._divide_by_scale(np.asarray(scale, dtype=np.float64))

    def right(self) -> NDArray[np.float64]:
        """Unit +X axis of this transform in parent space."""
        return self.transform_direction(RIGHT)

    def up(self) -> NDArray[np.float64]:
        """Unit +Y axis of this transform in parent space."""
        return self.transform_direction(UP)

    def forward(self) -> NDArray[np.float64]:
        """Unit +Z axis of this transform in parent space."""
        return self.transform_direction(FORWARD)

    # -- whole-transform composition -----------------------------------------

    def transform_transform(self, other: NonUniformTransform) -> NonUniformTransform:
        """Express a child transform in this transform's parent space.

        Args:
            other: Transform local to this one

        Returns:
            The child transform in parent space
        """
        return type(self)(
            position=self.transform_point(other.position),
            rotation=self.transform_rotation(other.rotation),
            scale=self.transform_scale(other.scale),
        )

    def inverse_transform_transform(self, other: NonUniformTransform) -> NonUniformTransform:
        """Express a parent-space transform in this transform's local space."""
        return type(self)(
            position=self.inverse_transform_point(other.position),
            rotation=self.inverse_transform_rotation(other.rotation),
            scale=self.inverse_transform_scale(other.scale),
        )

    def __matmul__(self, other: NonUniformTransform) -> NonUniformTransform:
        if not isinstance(other, NonUniformTransform):
            return NotImplemented
        return self.transform_transform(other)

    def inverse(self) -> NonUniformTransform:
        """Return the transform that undoes this one.

        Raises:
            NonInvertibleTransformError: If a scale component is zero and
                strict inverse checking is enabled
        """
        inverse_rotation = self._rotation().inv()
        inverse_scale = self._divide_by_scale(np.ones(3))
        with np.errstate(invalid="ignore"):
            position = -inverse_rotation.apply(np.asarray(self.position)) * inverse_scale
        return type(self)(position=position, rotation=inverse_rotation, scale=inverse_scale)

    # -- matrix interop ------------------------------------------------------

    def to_matrix(self) -> NDArray[np.float64]:
        """Convert to a 4x4 homogeneous matrix built as ``T @ R @ S``."""
        return trs_matrix(self.position, self._rotation(), self.scale)

    def to_inverse_matrix(self) -> NDArray[np.float64]:
        """Return the 4x4 matrix of the inverse transform."""
        return self.inverse().to_matrix()

    # -- copy-with mutators --------------------------------------------------

    def with_position(
        self, x: ArrayLike, y: float | None = None, z: float | None = None
    ) -> NonUniformTransform:
        """Return a copy with a new position (vector or three scalars)."""
        return self._replace(position=_position_args(x, y, z))

    def with_rotation(self, rotation: RotationLike) -> NonUniformTransform:
        """Return a copy with a new rotation."""
        return self._replace(rotation=rotation)

    def with_scale(self, scale: ArrayLike) -> NonUniformTransform:
        """Return a copy with a new scale (scalar or per-axis)."""
        return self._replace(scale=scale)

    def translate(self, translation: ArrayLike) -> NonUniformTransform:
        """Return a copy moved by ``translation`` in parent space."""
        return self._replace(position=np.asarray(self.position) + as_vectors(translation))

    def apply_scale(self, factor: float) -> NonUniformTransform:
        """Return a copy with every scale axis multiplied by ``factor``."""
        return self._replace(scale=np.asarray(self.scale) * factor)

    def rotate(self, rotation: RotationLike) -> NonUniformTransform:
        """Return a copy rotated by ``rotation`` in its local frame."""
        return self._replace(rotation=self.transform_rotation(rotation))

    def rotate_x(self, angle: float) -> NonUniformTransform:
        """Return a copy rotated about its local X axis (radians)."""
        return self.rotate(Rotation.from_euler("x", angle))

    def rotate_y(self, angle: float) -> NonUniformTransform:
        """Return a copy rotated about its local Y axis (radians)."""
        return self.rotate(Rotation.from_euler("y", angle))

    def rotate_z(self, angle: float) -> NonUniformTransform:
        """Return a copy rotated about its local Z axis (radians)."""
        return self.rotate(Rotation.from_euler("z", angle))

    # -- comparison and text -------------------------------------------------

    def is_close(self, other: NonUniformTransform, atol: float | None = None) -> bool:
        """Check equality within an absolute tolerance.

        Rotations compare equal up to quaternion sign, since ``q`` and
        ``-q`` describe the same rotation.
        """
        if atol is None:
            atol = get_settings().comparison_tolerance
        if not np.allclose(self.position, other.position, rtol=0.0, atol=atol):
            return False
        if not np.allclose(self.scale, other.scale, rtol=0.0, atol=atol):
            return False
        q1 = np.asarray(self.rotation)
        q2 = np.asarray(other.rotation)
        return bool(
            np.allclose(q1, q2, rtol=0.0, atol=atol) or np.allclose(q1, -q2, rtol=0.0, atol=atol)
        )

    def __str__(self) -> str:
        precision = get_settings().display_precision
        return (
            f"Position={_format_values(self.position, precision)} "
            f"Rotation={_format_values(self.rotation, precision)} "
            f"Scale={_format_values(self.scale, precision)}"
        )


IDENTITY = NonUniformTransform()
