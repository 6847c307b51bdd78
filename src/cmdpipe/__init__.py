"""cmdpipe - Composable shell command pipelines for operators."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cmdpipe")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
