"""Discovery of stored routine source files."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from ..naming import NameMangler
from ..text import Messages
from ..utils import collect_files, matches_extension, strip_extension


@dataclass(frozen=True, slots=True)
class SourceEntry:
    path: Path
    routine_name: str
    method_name: str


@dataclass(frozen=True, slots=True)
class FileError:
    path: str
    reason: str


def _entry_for(path: Path, extension: str, mangler: NameMangler) -> SourceEntry:
    routine_name = strip_extension(path, extension)
    return SourceEntry(
        path=path,
        routine_name=routine_name,
        method_name=mangler.method_name(routine_name),
    )


def discover_sources(
    root: Path | str,
    extension: str,
    mangler: NameMangler,
) -> list[SourceEntry]:
    """Return an entry for every source file under *root* (symlinks followed)."""

    return [_entry_for(path, extension, mangler) for path in collect_files(root, extension)]


def discover_sources_from_list(
    paths: Iterable[Path | str],
    extension: str,
    mangler: NameMangler,
) -> tuple[list[SourceEntry], list[FileError]]:
    """Validate an explicit list of source files.

    Missing files, directories and files with another extension are reported
    as file errors instead of aborting the run.
    """

    entries: list[SourceEntry] = []
    errors: list[FileError] = []
    seen: set[Path] = set()
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.exists():
            errors.append(FileError(str(raw), Messages.ERROR_FILE_MISSING))
            continue
        if not path.is_file():
            errors.append(FileError(str(raw), Messages.ERROR_FILE_NOT_FILE))
            continue
        if not matches_extension(path, extension):
            errors.append(
                FileError(str(raw), Messages.ERROR_FILE_EXTENSION.format(extension=extension))
            )
            continue
        resolved = path.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        entries.append(_entry_for(path, extension, mangler))
    return entries, errors


def detect_name_conflicts(
    entries: Sequence[SourceEntry],
) -> tuple[list[SourceEntry], dict[str, list[SourceEntry]]]:
    """Split *entries* into those with a unique method name and the conflicts.

    Every entry that shares its method name with another entry is part of the
    conflicts; none of them is kept.
    """

    by_method: dict[str, list[SourceEntry]] = defaultdict(list)
    for entry in entries:
        by_method[entry.method_name].append(entry)

    conflicts = {
        method: sorted(group, key=lambda entry: str(entry.path))
        for method, group in sorted(by_method.items())
        if len(group) > 1
    }
    unique = [entry for entry in entries if entry.method_name not in conflicts]
    return unique, conflicts
