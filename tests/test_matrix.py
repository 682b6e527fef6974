"""Tests for conversion between NonUniformTransform and 4x4 matrices."""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from placement3d.core.config import TransformSettings, use_settings
from placement3d.transform import (
    IDENTITY,
    InvalidTransformError,
    NonUniformTransform,
)
from placement3d.transform.linalg import orthonormalize, trs_matrix


def _matrix_from_basis(basis, translation=(0.0, 0.0, 0.0)):
    m = np.eye(4)
    m[:3, :3] = basis
    m[:3, 3] = translation
    return m


class TestToMatrix:
    """Test TRS matrix assembly."""

    def test_identity(self):
        """Test identity transform produces identity matrix."""
        np.testing.assert_array_almost_equal(IDENTITY.to_matrix(), np.eye(4))

    def test_translation(self):
        """Test translation lands in the last column."""
        m = NonUniformTransform.from_position(10.0, 20.0, 30.0).to_matrix()
        np.testing.assert_array_almost_equal(m[:3, 3], [10.0, 20.0, 30.0])

    def test_non_uniform_scale_diagonal(self):
        """Test per-axis scale lands on the diagonal."""
        m = NonUniformTransform.from_scale((2.0, 3.0, 4.0)).to_matrix()
        np.testing.assert_array_almost_equal(np.diag(m), [2.0, 3.0, 4.0, 1.0])

    def test_matches_transform_point(self):
        """Test the matrix applies scale, rotation and translation in point order."""
        t = NonUniformTransform.from_position_rotation_scale(
            (1.0, 2.0, 3.0), Rotation.from_euler("xyz", [0.3, -0.2, 1.1]), (2.0, 0.5, 3.0)
        )
        points = np.array([[1.0, 1.0, 1.0], [-2.0, 0.5, 4.0]])
        homogeneous = np.hstack([points, np.ones((2, 1))])
        via_matrix = (t.to_matrix() @ homogeneous.T).T[:, :3]
        np.testing.assert_array_almost_equal(via_matrix, t.transform_point(points))

    def test_inverse_matrix_uniform(self):
        """Test the inverse matrix undoes the matrix for uniform scale."""
        t = NonUniformTransform.from_position_rotation_scale(
            (5.0, -1.0, 2.0), Rotation.from_euler("zyx", [0.5, 0.1, -0.9]), 1.5
        )
        np.testing.assert_array_almost_equal(t.to_inverse_matrix() @ t.to_matrix(), np.eye(4))
        np.testing.assert_array_almost_equal(t.to_inverse_matrix(), np.linalg.inv(t.to_matrix()))

    def test_inverse_matrix_is_inverse_transform(self):
        """Test to_inverse_matrix is inverse().to_matrix()."""
        t = NonUniformTransform.from_position_rotation_scale(
            (5.0, -1.0, 2.0), Rotation.from_euler("x", 0.5), (1.0, 2.0, 3.0)
        )
        np.testing.assert_array_almost_equal(t.to_inverse_matrix(), t.inverse().to_matrix())


class TestFromMatrix:
    """Test lossy matrix decomposition."""

    def test_roundtrip_uniform(self):
        """Test from_matrix inverts to_matrix for uniform scale."""
        t = NonUniformTransform.from_position_rotation_scale(
            (5.0, 10.0, 15.0), Rotation.from_euler("xyz", [30, 45, 60], degrees=True), 1.5
        )
        assert NonUniformTransform.from_matrix(t.to_matrix()).is_close(t)

    def test_non_uniform_uses_max_axis(self):
        """Test non-uniform scale collapses to the largest axis length."""
        m = _matrix_from_basis(np.diag([1.0, 2.0, 1.0]), (1.0, 2.0, 3.0))
        t = NonUniformTransform.from_matrix(m)
        assert t.scale == (2.0, 2.0, 2.0)
        assert t.position == (1.0, 2.0, 3.0)
        assert t.is_close(t.with_rotation(IDENTITY.rotation))

    def test_non_uniform_keeps_rotation_and_position(self):
        """Test rotation and position survive a non-uniform round trip."""
        t = NonUniformTransform.from_position_rotation_scale(
            (-3.0, 0.5, 8.0), Rotation.from_euler("xyz", [0.4, 1.0, -0.7]), (1.0, 3.0, 2.0)
        )
        recovered = NonUniformTransform.from_matrix(t.to_matrix())
        assert recovered.is_close(t.with_scale(3.0))

    def test_shear_is_dropped(self):
        """Test sheared input still produces a proper rotation."""
        basis = np.array([[1.0, 0.6, 0.0], [0.0, 0.8, 0.0], [0.0, 0.0, 1.0]])
        t = NonUniformTransform.from_matrix(_matrix_from_basis(basis))
        # First axis keeps its direction
        np.testing.assert_array_almost_equal(t.right(), [1.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(t.up(), [0.0, 1.0, 0.0])

    def test_wrong_shape(self):
        """Test non-4x4 input raises."""
        with pytest.raises(ValueError):
            NonUniformTransform.from_matrix(np.eye(3))

    @pytest.mark.parametrize("scale", [(0.0, 1.0, 1.0), (1.0, 0.0, 1.0)])
    def test_zero_axis_scale(self, scale):
        """Test a matrix with one zero-length axis still decomposes."""
        t = NonUniformTransform.from_position_rotation_scale((1.0, 2.0, 3.0), IDENTITY.rotation, scale)

        recovered = NonUniformTransform.from_matrix(t.to_matrix())

        assert recovered.position == (1.0, 2.0, 3.0)
        assert recovered.scale == (1.0, 1.0, 1.0)
        assert recovered.is_close(recovered.with_rotation(IDENTITY.rotation))

    def test_zero_block(self):
        """Test an all-zero linear block gives identity rotation and zero scale."""
        m = _matrix_from_basis(np.zeros((3, 3)), (4.0, 5.0, 6.0))

        t = NonUniformTransform.from_matrix(m)

        assert t.scale == (0.0, 0.0, 0.0)
        assert t.position == (4.0, 5.0, 6.0)
        assert t.is_close(t.with_rotation(IDENTITY.rotation))

    def test_zero_axis_with_rotation(self):
        """Test a rotated zero-scale axis produces a finite proper rotation."""
        t = NonUniformTransform.from_position_rotation_scale(
            (0.0, 0.0, 0.0), Rotation.from_euler("z", np.pi / 2), (0.0, 1.0, 1.0)
        )

        recovered = NonUniformTransform.from_matrix(t.to_matrix())

        assert np.all(np.isfinite(recovered.rotation))
        assert np.linalg.det(recovered.to_matrix()[:3, :3]) == pytest.approx(1.0)

    def test_reflection_becomes_rotation(self):
        """Test a reflected basis comes back as a proper rotation."""
        t = NonUniformTransform.from_matrix(np.diag([-1.0, 1.0, 1.0, 1.0]))

        assert t.scale == (1.0, 1.0, 1.0)
        np.testing.assert_array_almost_equal(t.right(), [-1.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(t.up(), [0.0, 1.0, 0.0])
        np.testing.assert_array_almost_equal(t.forward(), [0.0, 0.0, -1.0])


class TestFromMatrixSafe:
    """Test validated matrix decomposition."""

    def test_roundtrip_uniform(self):
        """Test uniform transforms round trip without raising."""
        rng = np.random.default_rng(5)
        for _ in range(20):
            s = rng.uniform(0.1, 10.0)
            t = NonUniformTransform.from_position_rotation_scale(
                rng.uniform(-100.0, 100.0, size=3), rng.normal(size=4), (s, s, s)
            )
            recovered = NonUniformTransform.from_matrix_safe(t.to_matrix())
            assert recovered.is_close(t)

    def test_rejects_non_uniform_scale(self):
        """Test axis lengths (1, 2, 1) are reported as non-uniform scale."""
        m = _matrix_from_basis(np.diag([1.0, 2.0, 1.0]))
        with pytest.raises(InvalidTransformError) as excinfo:
            NonUniformTransform.from_matrix_safe(m)
        assert excinfo.value.reason == "non_uniform_scale"
        assert isinstance(excinfo.value, ValueError)

        # The lossy variant accepts the same matrix
        assert NonUniformTransform.from_matrix(m).scale == (2.0, 2.0, 2.0)

    def test_rejects_shear(self):
        """Test equal-length but non-perpendicular axes are reported as non-orthogonal."""
        basis = np.array([[1.0, 0.6, 0.0], [0.0, 0.8, 0.0], [0.0, 0.0, 1.0]])
        with pytest.raises(InvalidTransformError) as excinfo:
            NonUniformTransform.from_matrix_safe(_matrix_from_basis(basis))
        assert excinfo.value.reason == "non_orthogonal"

    def test_rejects_reflection(self):
        """Test a mirrored axis is reported as non-orthogonal."""
        with pytest.raises(InvalidTransformError) as excinfo:
            NonUniformTransform.from_matrix_safe(np.diag([-1.0, 1.0, 1.0, 1.0]))
        assert excinfo.value.reason == "non_orthogonal"
        assert "reflection" in str(excinfo.value)

    def test_rejects_negative_uniform_scale(self):
        """Test a negative uniform scale is a reflection and is rejected."""
        t = NonUniformTransform.from_position_rotation_scale(
            (1.0, 2.0, 3.0), Rotation.from_euler("x", 0.3), -2.0
        )
        with pytest.raises(InvalidTransformError) as excinfo:
            NonUniformTransform.from_matrix_safe(t.to_matrix())
        assert excinfo.value.reason == "non_orthogonal"

    def test_rejects_zero_block(self):
        """Test a zero linear block is rejected."""
        m = _matrix_from_basis(np.zeros((3, 3)))
        with pytest.raises(InvalidTransformError) as excinfo:
            NonUniformTransform.from_matrix_safe(m)
        assert excinfo.value.reason == "non_orthogonal"

    def test_tolerance(self):
        """Test small deviations pass and the tolerance is configurable."""
        m = _matrix_from_basis(np.diag([1.0, 1.0 + 1e-8, 1.0]))
        NonUniformTransform.from_matrix_safe(m)

        m = _matrix_from_basis(np.diag([1.0, 1.01, 1.0]))
        with pytest.raises(InvalidTransformError):
            NonUniformTransform.from_matrix_safe(m)
        assert NonUniformTransform.from_matrix_safe(m, tolerance=0.5).scale == (1.0, 1.0, 1.0)

    def test_tolerance_from_settings(self):
        """Test the default tolerance is read from the active settings."""
        m = _matrix_from_basis(np.diag([1.0, 1.01, 1.0]))
        with use_settings(TransformSettings(decomposition_tolerance=0.5)):
            NonUniformTransform.from_matrix_safe(m)


class TestLinalg:
    """Test helper functions."""

    def test_orthonormalize_rotation_unchanged(self):
        """Test a clean rotation passes through orthonormalize."""
        r = Rotation.from_euler("xyz", [0.2, 0.4, 0.6]).as_matrix()
        np.testing.assert_array_almost_equal(orthonormalize(r), r)

    def test_orthonormalize_scaled(self):
        """Test scaled columns come back unit length and perpendicular."""
        basis = np.diag([2.0, 5.0, 0.5]) @ np.array([[1.0, 0.2, 0.0], [0.0, 1.0, 0.3], [0.1, 0.0, 1.0]])
        q = orthonormalize(basis)
        np.testing.assert_array_almost_equal(q.T @ q, np.eye(3))
        assert np.linalg.det(q) == pytest.approx(1.0)

    def test_orthonormalize_zero_columns(self):
        """Test zero and parallel columns are replaced by perpendicular axes."""
        np.testing.assert_array_almost_equal(orthonormalize(np.zeros((3, 3))), np.eye(3))

        parallel = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 1.0]])
        q = orthonormalize(parallel)
        np.testing.assert_array_almost_equal(q[:, 0], [0.0, 1.0, 0.0])
        np.testing.assert_array_almost_equal(q.T @ q, np.eye(3))
        assert np.linalg.det(q) == pytest.approx(1.0)

    def test_trs_matrix(self):
        """Test trs_matrix equals T @ R @ S."""
        r = Rotation.from_euler("y", 0.8)
        t = np.eye(4)
        t[:3, 3] = [1.0, 2.0, 3.0]
        rm = np.eye(4)
        rm[:3, :3] = r.as_matrix()
        s = np.diag([2.0, 3.0, 4.0, 1.0])
        np.testing.assert_array_almost_equal(trs_matrix([1.0, 2.0, 3.0], r, [2.0, 3.0, 4.0]), t @ rm @ s)
