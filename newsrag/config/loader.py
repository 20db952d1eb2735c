"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Field defaults in settings.py
#   2. config/config.yaml  -- Static defaults checked into the repo
#   3. .env file           -- Local developer overrides (not committed)
#   4. Environment vars    -- Set at deploy time
#
# The YAML file is grouped into sections for readability:
#
#   chunking:
#     chunk_size: 1000
#
# Sections are flattened (section keys are Settings field names) and any
# field that the environment or .env explicitly set wins over YAML.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from newsrag.config.settings import Settings
from newsrag.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml") -> dict:
    """Read the YAML config file into a nested dict (empty when absent)."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        # safe_load only; the file never needs arbitrary Python objects.
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(message=f"{path} must contain a mapping at the top level")
    return data


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Build the :class:`Settings` value for this process.

    Args:
        path: Path to the YAML configuration file.

    Raises:
        ConfigurationError: If the YAML or environment holds invalid values.
    """
    yaml_values = _flatten(load_config(path))
    try:
        env_settings = Settings()
        merged = dict(yaml_values)
        _deep_merge(merged, env_settings.model_dump(include=env_settings.model_fields_set))
        return Settings(**merged)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid configuration: {exc}") from exc


def _flatten(config: dict) -> dict:
    """Collapse one level of YAML sections into Settings field names."""
    flat: dict = {}
    for key, value in config.items():
        if isinstance(value, dict):
            flat.update(value)
        else:
            flat[key] = value
    return flat


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
