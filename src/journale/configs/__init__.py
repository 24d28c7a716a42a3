"""Configuration models for the Journale client."""

from .config import JournaleConfig, config_file_path, load_config
from .system import AuthMode, LoggingConfig

__all__ = [
    "AuthMode",
    "JournaleConfig",
    "LoggingConfig",
    "config_file_path",
    "load_config",
]
