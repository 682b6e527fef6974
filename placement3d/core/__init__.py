"""Core settings for placement3d."""

from .config import TransformSettings, get_settings, set_settings, use_settings
