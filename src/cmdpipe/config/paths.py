"""Locating the directory that holds the ``.env`` file."""

# Standard library imports
import os
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT_ENV = "CMDPIPE_PROJECT_ROOT"

# Files that mark a project directory
ROOT_MARKERS = (".env", "pyproject.toml", ".git")


@lru_cache(maxsize=1)
def get_root() -> Path:
    """Return the project root used for ``.env`` and relative setting paths.

    ``CMDPIPE_PROJECT_ROOT`` wins when it names an existing directory.
    Otherwise the nearest directory at or above the working directory that
    contains one of :data:`ROOT_MARKERS` is used, falling back to the working
    directory itself.
    """
    configured = os.getenv(PROJECT_ROOT_ENV)
    if configured and Path(configured).is_dir():
        return Path(configured).resolve()

    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        if any((directory / marker).exists() for marker in ROOT_MARKERS):
            return directory
    return cwd


def clear_root() -> None:
    get_root.cache_clear()
