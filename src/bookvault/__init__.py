"""Bookvault: browser bookmark exports with a capped backup lifecycle."""

from importlib import metadata

try:
    __version__ = metadata.version("bookvault")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
