"""Public Python API for routinesync."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from .config import DEFAULT_CONFIG_FILE, Config, load_config
from .db import connect
from .naming import get_mangler
from .services.metadata_service import RoutineMetadataRecord, load_metadata
from .services.routine_loader import load_routine
from .services.sync_service import RoutineLoader, SyncResult, synchronize


def resolve_config(config: Config | Path | str | None = None) -> Config:
    """Return *config* as a Config, reading it from disk when given a path."""
    if isinstance(config, Config):
        return config
    return load_config(config if config is not None else DEFAULT_CONFIG_FILE)


def run_loader(
    config: Config | Path | str | None = None,
    file_names: Sequence[Path | str] | None = None,
    *,
    loader: RoutineLoader = load_routine,
) -> SyncResult:
    """Connect to the configured schema and synchronize its stored routines.

    With *file_names* only those source files are loaded; otherwise the whole
    source directory is synchronized and obsolete routines are dropped.
    """

    settings = resolve_config(config)
    mangler = get_mangler(settings.mangler)
    with connect(settings.database, character_set=settings.loader.character_set) as db:
        return synchronize(db, settings, file_names, mangler=mangler, loader=loader)


def read_metadata(config: Config | Path | str | None = None) -> dict[str, RoutineMetadataRecord]:
    """Return the persisted metadata snapshot of the configured project."""
    settings = resolve_config(config)
    return load_metadata(settings.metadata_path)
