"""
Sync context configuration.

A sync configuration file is a JSON document with one entry per server
context. The ``_`` entry holds defaults shared by all contexts and
``filters`` holds named lists of table filter patterns::

    {
        "_": {"mysqldump": {"option": "--single-transaction"}},
        "production": {
            "ssh": {"hostname": "deploy@www.example.com"},
            "mysql": {"username": "shop", "password": "secret",
                      "database": ["shop_local:shop"], "filter": "cache"},
            "rsync": {"path": "/var/www/shop/", "directory": ["/fileadmin/"]}
        },
        "filters": {"cache": ["^cache_", "/^cf_/i"]}
    }
"""

# Standard library imports
import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple, Union

# Local/package imports
from ..core.exceptions import ConfigError
from ..utils.logger import get_logger
from ..utils.security import mask_sensitive_data

DEFAULTS_KEY = "_"
FILTERS_KEY = "filters"
RESERVED_KEYS = {DEFAULTS_KEY, FILTERS_KEY}


def merge_recursive(
    base: Mapping[str, Any], override: Mapping[str, Any]
) -> Dict[str, Any]:
    """Merge two mappings; nested mappings merge, everything else is replaced."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_recursive(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_database_entry(entry: str) -> Tuple[str, str]:
    """Split a ``local:foreign`` database entry into its two names."""
    if ":" in entry:
        local, foreign = entry.split(":", 1)
    else:
        local = foreign = entry
    local, foreign = local.strip(), foreign.strip()
    if not local or not foreign:
        raise ConfigError(f"Invalid database entry {entry!r}")
    return local, foreign


class SyncConfiguration:
    """Loads sync contexts from a JSON file."""

    def __init__(self, config_path: Union[str, Path]):
        """Initialize configuration.

        Args:
            config_path: Path to the JSON configuration file

        Raises:
            ConfigError: If the file is missing or not valid JSON
        """
        self.logger = get_logger(__name__)
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(
                f"Configuration file not found: {self.config_path}"
            ) from e
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON in configuration file: {str(e)}"
            ) from e
        except OSError as e:
            raise ConfigError(f"Failed to load configuration: {str(e)}") from e

        if not isinstance(data, dict):
            raise ConfigError("Sync configuration must be a JSON object")

        self._config = data
        self.logger.debug(
            "Loaded sync configuration from %s: %s",
            self.config_path,
            mask_sensitive_data(data),
        )

    def list_contexts(self) -> List[str]:
        return sorted(key for key in self._config if key not in RESERVED_KEYS)

    def get_context(self, name: str) -> Dict[str, Any]:
        """Return a context merged over the shared defaults.

        Raises:
            ConfigError: If no valid context with this name exists
        """
        if not name or name in RESERVED_KEYS or not self._config.get(name):
            raise ConfigError(f'No valid configuration found for context "{name}"')

        context = self._config[name]
        if not isinstance(context, dict):
            raise ConfigError(f'Configuration for context "{name}" must be an object')

        defaults = self._config.get(DEFAULTS_KEY) or {}
        return merge_recursive(defaults, context)

    def get_filters(self) -> Dict[str, List[str]]:
        filters = self._config.get(FILTERS_KEY) or {}
        if not isinstance(filters, dict):
            raise ConfigError('"filters" must map filter names to pattern lists')
        return {name: list(patterns) for name, patterns in filters.items()}
