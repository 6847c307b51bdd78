"""Execution settings and project root discovery."""

# Local imports
from ..core.exceptions import ConfigError
from .paths import clear_root, get_root
from .settings import ExecutionConfig, clear_config, get_config

__all__ = [
    "ConfigError",
    "ExecutionConfig",
    "clear_config",
    "clear_root",
    "get_config",
    "get_root",
]
