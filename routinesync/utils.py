"""Utility helpers for filesystem access and path handling."""

from __future__ import annotations

from pathlib import Path
from typing import List
import os


def resolve_directory(path: Path | str) -> Path:
    """Resolve and validate a user supplied directory path."""
    dir_path = Path(path).expanduser().resolve()
    if not dir_path.exists():
        raise FileNotFoundError(f"Directory does not exist: {dir_path}")
    if not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    return dir_path


def normalize_extension(value: str | None) -> str:
    """Return *value* as an extension with a leading dot, or ''."""

    if value is None:
        return ""
    token = str(value).strip()
    if not token:
        return ""
    if not token.startswith("."):
        token = f".{token}"
    if token == ".":
        return ""
    return token


def matches_extension(path: Path, extension: str) -> bool:
    """Return True if *path* ends with *extension* (case-sensitive)."""

    filename = path.name
    return len(filename) > len(extension) and filename.endswith(extension)


def strip_extension(path: Path, extension: str) -> str:
    """Return the file name of *path* without *extension*."""

    return path.name[: len(path.name) - len(extension)]


def collect_files(root: Path | str, extension: str) -> List[Path]:
    """Collect files under *root* ending with *extension*, following symlinks."""

    directory = resolve_directory(root)
    files: List[Path] = []
    seen_dirs: set[str] = set()

    for dirpath, dirnames, filenames in os.walk(directory, topdown=True, followlinks=True):
        real = os.path.realpath(dirpath)
        if real in seen_dirs:
            # Symlink cycle or a directory reachable twice.
            dirnames[:] = []
            continue
        seen_dirs.add(real)
        dirnames.sort()
        current_dir = Path(dirpath)
        for filename in filenames:
            candidate = current_dir / filename
            if not matches_extension(candidate, extension):
                continue
            if not candidate.is_file():
                continue
            files.append(candidate)

    files.sort()
    return files


def format_path(path: Path | str, base: Path | None = None) -> str:
    """Return a user friendly representation of *path* relative to *base* when possible."""
    path = Path(path)
    if base:
        try:
            relative = path.relative_to(base)
            return f"./{relative.as_posix()}"
        except ValueError:
            return str(path)
    return str(path)
