"""Configuration management for placement3d.

This module defines the settings model using Pydantic for validation.
Settings can be loaded from JSON files or constructed programmatically,
and one instance is active per thread or asyncio task.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Iterator

from pydantic import BaseModel, Field


class TransformSettings(BaseModel):
    """Numerical settings shared by all transform operations."""

    decomposition_tolerance: float = Field(
        default=1e-3,
        gt=0,
        description="Tolerance for matrix validation (compared squared against squared lengths)",
    )
    comparison_tolerance: float = Field(
        default=1e-5,
        gt=0,
        description="Absolute tolerance used by is_close",
    )
    strict_inverse: bool = Field(
        default=True,
        description="Raise on zero scale in inverse operations instead of producing inf/nan",
    )
    display_precision: int = Field(
        default=3,
        ge=0,
        le=12,
        description="Decimals used when formatting transforms as text",
    )

    model_config = {"frozen": True}

    @classmethod
    def from_file(cls, path: Path | str) -> TransformSettings:
        """Load settings from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save settings to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def default(cls) -> TransformSettings:
        """Create default settings."""
        return cls()


_active: ContextVar[TransformSettings] = ContextVar(
    "placement3d_settings", default=TransformSettings()
)


def get_settings() -> TransformSettings:
    """Return the settings active in the current context."""
    return _active.get()


def set_settings(settings: TransformSettings) -> None:
    """Replace the settings for the current context.

    Other threads and asyncio tasks keep their own active settings.
    """
    _active.set(settings)


@contextmanager
def use_settings(settings: TransformSettings) -> Iterator[TransformSettings]:
    """Temporarily activate ``settings``, restoring the previous ones on exit."""
    token = _active.set(settings)
    try:
        yield settings
    finally:
        _active.reset(token)
