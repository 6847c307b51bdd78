"""Execution settings read from ``CMDPIPE_*`` environment variables."""

# Standard library imports
import codecs
import os
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

# Local imports
from ..core.exceptions import ConfigError
from .paths import get_root

ENV_PREFIX = "CMDPIPE_"

TRUE_VALUES = ("true", "1", "yes", "on")


def _parse_env_value(raw: str, field_type):
    """Convert an environment string to the type of a settings field."""
    if field_type is bool:
        return raw.lower() in TRUE_VALUES
    if field_type in (Path, Optional[Path]):
        if not raw and field_type == Optional[Path]:
            return None
        path = Path(raw).expanduser()
        # Relative paths are anchored at the project root
        return path if path.is_absolute() else get_root() / path
    if field_type == List[str]:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return field_type(raw)


@dataclass
class ExecutionConfig:
    """Settings used when rendering and running command pipelines.

    Every field can be overridden by an environment variable named after it,
    e.g. ``CMDPIPE_SHELL`` or ``CMDPIPE_SSH_OPTIONS`` (comma separated).
    Directories are not created here; code that writes to them does that.
    """

    # Shell that interprets rendered pipelines; pipefail needs bash
    shell: str = field(default="/bin/bash")
    pipefail: bool = field(default=True)
    encoding: str = field(default="utf-8")
    working_dir: Optional[Path] = field(default=None)
    temp_dir: Path = field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "cmdpipe"
    )

    # Remote execution
    ssh_binary: str = field(default="ssh")
    ssh_options: List[str] = field(default_factory=lambda: ["-o BatchMode=yes"])

    # Container execution
    container_runtime: str = field(default="docker")
    container_shell: str = field(default="sh")

    # Log settings
    verbose: bool = field(default=False)
    debug: bool = field(default=False)

    def __post_init__(self):
        self._load_from_env()
        self._validate()

    def _load_from_env(self) -> None:
        for settings_field in fields(self):
            env_key = f"{ENV_PREFIX}{settings_field.name.upper()}"
            raw = os.getenv(env_key)
            if raw is None:
                continue

            raw = raw.split("#")[0].strip()
            try:
                value = _parse_env_value(raw, settings_field.type)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {env_key}: {raw} - {e}") from e
            setattr(self, settings_field.name, value)

    def _validate(self) -> None:
        for name in ("shell", "ssh_binary", "container_runtime", "container_shell"):
            if not getattr(self, name):
                raise ConfigError(f"Configuration value '{name}' must not be empty")

        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ConfigError(f"Unknown encoding: {self.encoding}") from e

        if self.working_dir is not None and not Path(self.working_dir).is_dir():
            raise ConfigError(f"Working directory does not exist: {self.working_dir}")


_current: Optional[ExecutionConfig] = None


def get_config(force_refresh: bool = False) -> ExecutionConfig:
    """Return the process-wide settings, reading the environment on first use."""
    global _current
    if force_refresh or _current is None:
        _current = ExecutionConfig()
    return _current


def clear_config() -> None:
    """Forget the cached settings so the next access re-reads the environment."""
    global _current
    _current = None
