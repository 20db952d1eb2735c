"""Configuration module -- exports Settings and the layered loaders."""

from newsrag.config.loader import load_config, load_settings
from newsrag.config.settings import Settings

__all__ = ["Settings", "load_config", "load_settings"]
