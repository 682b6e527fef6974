"""Exceptions raised by transform operations."""

from __future__ import annotations

from typing import Literal

DecompositionFailure = Literal["non_uniform_scale", "non_orthogonal"]


class InvalidTransformError(ValueError):
    """A matrix cannot be decomposed without losing information.

    Attributes:
        reason: Which check failed, ``"non_uniform_scale"`` or ``"non_orthogonal"``
    """

    def __init__(self, reason: DecompositionFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class NonInvertibleTransformError(ValueError):
    """A transform with a zero scale component was asked for its inverse."""
