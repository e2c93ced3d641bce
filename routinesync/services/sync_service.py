"""Synchronization of the schema's stored routines with the source tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, MutableMapping, Sequence

from ..errors import DatabaseError, MetadataWriteError
from ..naming import get_mangler
from ..text import Messages
from .catalog_service import (
    RdbmsRoutineDescriptor,
    negotiate_character_set,
    negotiate_sql_mode,
    read_routine_catalog,
)
from .metadata_service import RoutineMetadataRecord, load_metadata, save_metadata
from .placeholder_service import PlaceholderMap, build_placeholder_map
from .routine_loader import LoadStatus, RoutineLoadResult, load_routine
from .source_service import (
    FileError,
    SourceEntry,
    detect_name_conflicts,
    discover_sources,
    discover_sources_from_list,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..config import Config
    from ..db import DataLayer
    from ..naming import NameMangler

RoutineLoader = Callable[..., RoutineLoadResult]


class SyncScope(str, Enum):
    FULL = "full"
    LIST = "list"


@dataclass(frozen=True, slots=True)
class RoutineAction:
    routine_name: str
    routine_type: str


@dataclass(frozen=True, slots=True)
class DropFailure:
    routine_name: str
    routine_type: str
    reason: str


@dataclass(slots=True)
class SyncResult:
    scope: SyncScope
    sql_mode: str = ""
    character_set: str = ""
    collation: str = ""
    loaded: list[RoutineAction] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)
    conflicts: dict[str, list[str]] = field(default_factory=dict)
    dropped: list[RoutineAction] = field(default_factory=list)
    drop_failures: list[DropFailure] = field(default_factory=list)
    metadata_path: Path | None = None

    @property
    def ok(self) -> bool:
        return not self.errors and not self.drop_failures

    @property
    def error_paths(self) -> list[str]:
        return [error.path for error in self.errors]


def load_routines(
    db: "DataLayer",
    entries: Sequence[SourceEntry],
    *,
    placeholders: PlaceholderMap,
    metadata: MutableMapping[str, RoutineMetadataRecord],
    descriptors: dict[str, RdbmsRoutineDescriptor],
    sql_mode: str,
    character_set: str,
    collation: str,
    loader: RoutineLoader = load_routine,
) -> tuple[list[RoutineAction], list[str], list[FileError]]:
    """Load every entry in routine name order, updating *metadata* in place.

    A failing routine loses its metadata record and is reported; the remaining
    routines are still processed.
    """

    loaded: list[RoutineAction] = []
    skipped: list[str] = []
    errors: list[FileError] = []
    for entry in sorted(entries, key=lambda item: (item.routine_name, str(item.path))):
        name = entry.routine_name
        result = loader(
            db,
            entry,
            old_record=metadata.get(name),
            placeholders=placeholders,
            descriptor=descriptors.get(name),
            sql_mode=sql_mode,
            character_set=character_set,
            collation=collation,
        )
        if not result.ok:
            metadata.pop(name, None)
            errors.append(FileError(str(entry.path), result.message or LoadStatus.ERROR.value))
            continue
        metadata[name] = result.record
        if result.status == LoadStatus.LOADED:
            loaded.append(RoutineAction(name, result.record.routine_type))
        else:
            skipped.append(name)
    return loaded, skipped, errors


def drop_obsolete_routines(
    db: "DataLayer",
    entries: Sequence[SourceEntry],
    descriptors: dict[str, RdbmsRoutineDescriptor],
) -> tuple[list[RoutineAction], list[DropFailure]]:
    """Drop routines in the schema that have no source file.

    Only meaningful when *entries* covers the whole source tree.
    """

    lookup = {entry.routine_name: entry for entry in entries}
    dropped: list[RoutineAction] = []
    failures: list[DropFailure] = []
    for name in sorted(descriptors):
        if name in lookup:
            continue
        descriptor = descriptors[name]
        try:
            db.execute_none(f"drop {descriptor.kind} if exists `{name}`")
        except DatabaseError as exc:
            failures.append(DropFailure(name, descriptor.kind, str(exc)))
            continue
        dropped.append(RoutineAction(name, descriptor.kind))
    return dropped, failures


def purge_obsolete_metadata(
    metadata: MutableMapping[str, RoutineMetadataRecord],
    entries: Sequence[SourceEntry],
) -> list[str]:
    """Remove records of routines without a source file; return the purged names."""

    present = {entry.routine_name for entry in entries}
    purged = sorted(name for name in metadata if name not in present)
    for name in purged:
        del metadata[name]
    return purged


def synchronize(
    db: "DataLayer",
    config: "Config",
    file_names: Sequence[Path | str] | None = None,
    *,
    mangler: "NameMangler | None" = None,
    loader: RoutineLoader = load_routine,
) -> SyncResult:
    """Run one synchronization of the stored routines against *db*.

    Without *file_names* the whole source directory is synchronized and
    obsolete routines are dropped. With *file_names* only those files are
    loaded and nothing outside them is dropped or purged.
    """

    settings = config.loader
    mangler = mangler or get_mangler(config.mangler)
    scope = SyncScope.LIST if file_names else SyncScope.FULL
    result = SyncResult(scope=scope, metadata_path=config.metadata_path)

    if scope == SyncScope.FULL:
        discovered = discover_sources(settings.source_directory, settings.extension, mangler)
    else:
        discovered, discovery_errors = discover_sources_from_list(
            file_names or (), settings.extension, mangler
        )
        result.errors.extend(discovery_errors)

    entries, conflicts = detect_name_conflicts(discovered)

    metadata = load_metadata(config.metadata_path)
    for method, group in conflicts.items():
        result.conflicts[method] = [str(entry.path) for entry in group]
        for entry in group:
            metadata.pop(entry.routine_name, None)
            result.errors.append(
                FileError(str(entry.path), Messages.ERROR_NAME_CONFLICT.format(method=method))
            )

    result.sql_mode = negotiate_sql_mode(db, settings.sql_mode)
    result.character_set, result.collation = negotiate_character_set(
        db, settings.character_set, settings.collation
    )
    placeholders = build_placeholder_map(db, settings.constants, sql_mode=result.sql_mode)
    descriptors = read_routine_catalog(db)

    loaded, skipped, load_errors = load_routines(
        db,
        entries,
        placeholders=placeholders,
        metadata=metadata,
        descriptors=descriptors,
        sql_mode=result.sql_mode,
        character_set=result.character_set,
        collation=result.collation,
        loader=loader,
    )
    result.loaded.extend(loaded)
    result.skipped.extend(skipped)
    result.errors.extend(load_errors)

    if scope == SyncScope.FULL:
        dropped, failures = drop_obsolete_routines(db, discovered, descriptors)
        result.dropped.extend(dropped)
        result.drop_failures.extend(failures)
        purge_obsolete_metadata(metadata, discovered)

    try:
        save_metadata(config.metadata_path, metadata)
    except MetadataWriteError as exc:
        exc.result = result
        raise
    return result
