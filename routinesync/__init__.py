"""routinesync package initialization."""

from __future__ import annotations

from .api import read_metadata, run_loader
from .errors import (
    ConfigError,
    DatabaseError,
    MetadataCorruptError,
    MetadataWriteError,
    RoutineSyncError,
)

__all__ = [
    "__version__",
    "ConfigError",
    "DatabaseError",
    "MetadataCorruptError",
    "MetadataWriteError",
    "RoutineSyncError",
    "get_version",
    "read_metadata",
    "run_loader",
]

__version__ = "0.3.0"


def get_version() -> str:
    """Return the current package version."""
    return __version__
