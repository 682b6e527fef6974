"""placement3d - Non-uniform affine transforms for 3D placement.

A Python library for placing and orienting objects in 3D space and for
composing and inverting the spatial relationships between them.
"""

__version__ = "0.1.0"

from .core.config import TransformSettings, get_settings, set_settings, use_settings
from .transform import (
    IDENTITY,
    InvalidTransformError,
    NonInvertibleTransformError,
    NonUniformTransform,
)

__all__ = [
    "IDENTITY",
    "NonUniformTransform",
    "InvalidTransformError",
    "NonInvertibleTransformError",
    "TransformSettings",
    "get_settings",
    "set_settings",
    "use_settings",
]
