"""Affine transform value type.

This module provides NonUniformTransform, a position + rotation +
per-axis scale value used to place objects and compose spatial
relationships between them.
"""

from .errors import InvalidTransformError, NonInvertibleTransformError
from .transform import IDENTITY, NonUniformTransform

__all__ = [
    "IDENTITY",
    "NonUniformTransform",
    "InvalidTransformError",
    "NonInvertibleTransformError",
]
