"""Configuration module -- exports Settings and the YAML/profile loaders."""

from docportal.config.loader import load_config, load_notable_names, load_profile
from docportal.config.notable_names import DEFAULT_NOTABLE_NAMES
from docportal.config.settings import Settings

__all__ = [
    "DEFAULT_NOTABLE_NAMES",
    "Settings",
    "load_config",
    "load_notable_names",
    "load_profile",
]
