"""Exception types shared across routinesync."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .services.sync_service import SyncResult


class RoutineSyncError(RuntimeError):
    """Base class for errors raised by routinesync."""


class ConfigError(RoutineSyncError):
    """Raised when the configuration file is missing or invalid."""


class DatabaseError(RoutineSyncError):
    """Raised when the database rejects a statement or returns an unexpected result."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        query: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.query = query

    def __str__(self) -> str:
        if self.code is not None:
            return f"MySQL error {self.code}: {self.message}"
        return self.message


class PlaceholderError(RoutineSyncError):
    """Raised when routine source references an unknown placeholder."""


class RoutineSourceError(RoutineSyncError):
    """Raised when a routine source file cannot be parsed."""


class MetadataCorruptError(RoutineSyncError):
    """Raised when the metadata file exists but is not well-formed."""


class MetadataWriteError(RoutineSyncError):
    """Raised when the metadata snapshot could not be persisted."""

    def __init__(self, message: str, *, result: "SyncResult | None" = None) -> None:
        super().__init__(message)
        self.result = result
