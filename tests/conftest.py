"""Shared pytest fixtures."""

import pytest

from placement3d.core.config import TransformSettings, get_settings, set_settings


@pytest.fixture(autouse=True)
def restore_settings():
    """Restore the active settings after each test."""
    previous = get_settings()
    yield
    set_settings(previous)


@pytest.fixture
def default_settings() -> TransformSettings:
    """Default settings instance."""
    return TransformSettings.default()
