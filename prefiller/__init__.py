"""Core package for the prefiller form-filling tooling."""

from importlib import metadata

try:
    __version__ = metadata.version("prefiller")
except metadata.PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = ["__version__"]
