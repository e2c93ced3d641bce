"""Configuration loading for routinesync."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from .errors import ConfigError
from .naming import DEFAULT_MANGLER, available_manglers
from .text import Messages
from .utils import normalize_extension

DEFAULT_CONFIG_FILE = Path("routinesync.json")
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3306
DEFAULT_USER = "root"
DEFAULT_EXTENSION = ".psql"
DEFAULT_SQL_MODE = (
    "STRICT_ALL_TABLES,ERROR_FOR_DIVISION_BY_ZERO,NO_AUTO_VALUE_ON_ZERO,"
    "NO_ENGINE_SUBSTITUTION,NO_ZERO_DATE,NO_ZERO_IN_DATE,ONLY_FULL_GROUP_BY"
)
DEFAULT_CHARACTER_SET = "utf8mb4"
DEFAULT_COLLATION = "utf8mb4_general_ci"
ENV_DB_PASSWORD = "ROUTINESYNC_DB_PASSWORD"

ConstantValue = str | int | float

_CONSTANT_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class DatabaseConfig:
    database: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    user: str = DEFAULT_USER
    password: str | None = None


@dataclass
class LoaderConfig:
    source_directory: Path
    extension: str = DEFAULT_EXTENSION
    sql_mode: str = DEFAULT_SQL_MODE
    character_set: str = DEFAULT_CHARACTER_SET
    collation: str = DEFAULT_COLLATION
    constants: Dict[str, ConstantValue] = field(default_factory=dict)


@dataclass
class Config:
    database: DatabaseConfig
    loader: LoaderConfig
    metadata_path: Path
    mangler: str = DEFAULT_MANGLER
    config_path: Path | None = None


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(Messages.ERROR_CONFIG_SECTION.format(section=name))
    return value


def _require(section: Mapping[str, Any], section_name: str, key: str) -> str:
    value = section.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigError(
            Messages.ERROR_CONFIG_MISSING.format(section=section_name, key=key)
        )
    return str(value).strip()


def _optional_str(section: Mapping[str, Any], key: str, default: str) -> str:
    value = section.get(key)
    if value is None:
        return default
    cleaned = str(value).strip()
    return cleaned or default


def _resolve_path(value: str, base_dir: Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def _coerce_port(value: object) -> int:
    if value is None:
        return DEFAULT_PORT
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(Messages.ERROR_CONFIG_PORT.format(value=value)) from exc
    if port <= 0:
        raise ConfigError(Messages.ERROR_CONFIG_PORT.format(value=value))
    return port


def validate_constants(raw: object, *, origin: str) -> Dict[str, ConstantValue]:
    """Return a validated copy of a constant name to value mapping."""

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(Messages.ERROR_CONSTANTS_NOT_MAPPING.format(origin=origin))
    constants: Dict[str, ConstantValue] = {}
    for name, value in raw.items():
        if not isinstance(name, str) or not _CONSTANT_NAME.match(name):
            raise ConfigError(
                Messages.ERROR_CONSTANT_NAME.format(name=name, origin=origin)
            )
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ConfigError(
                Messages.ERROR_CONSTANT_VALUE.format(name=name, origin=origin)
            )
        constants[name] = value
    return constants


def _load_constants_file(path: Path) -> Dict[str, ConstantValue]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(Messages.ERROR_CONSTANTS_FILE_MISSING.format(path=path)) from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(
            Messages.ERROR_CONSTANTS_FILE_INVALID.format(path=path, reason=exc)
        ) from exc
    return validate_constants(raw, origin=str(path))


def config_from_mapping(raw: Mapping[str, Any], *, base_dir: Path) -> Config:
    """Build a Config from parsed JSON, resolving relative paths against *base_dir*."""

    if not isinstance(raw, dict):
        raise ConfigError(Messages.ERROR_CONFIG_NOT_OBJECT)
    database_raw = _section(raw, "database")
    wrapper_raw = _section(raw, "wrapper")
    loader_raw = _section(raw, "loader")

    password = os.environ.get(ENV_DB_PASSWORD) or database_raw.get("password") or None
    database = DatabaseConfig(
        database=_require(database_raw, "database", "database"),
        host=_optional_str(database_raw, "host", DEFAULT_HOST),
        port=_coerce_port(database_raw.get("port")),
        user=_optional_str(database_raw, "user", DEFAULT_USER),
        password=str(password) if password is not None else None,
    )

    mangler = _optional_str(wrapper_raw, "mangler", DEFAULT_MANGLER).lower()
    if mangler not in available_manglers():
        raise ConfigError(
            Messages.ERROR_CONFIG_MANGLER.format(
                value=mangler, allowed=", ".join(available_manglers())
            )
        )
    metadata_path = _resolve_path(_require(wrapper_raw, "wrapper", "metadata"), base_dir)

    extension = normalize_extension(loader_raw.get("extension") or DEFAULT_EXTENSION)
    if not extension:
        raise ConfigError(
            Messages.ERROR_CONFIG_EXTENSION.format(value=loader_raw.get("extension"))
        )

    constants: Dict[str, ConstantValue] = {}
    constants_file = loader_raw.get("constants_file")
    if constants_file:
        constants.update(
            _load_constants_file(_resolve_path(str(constants_file), base_dir))
        )
    constants.update(validate_constants(loader_raw.get("constants"), origin="loader.constants"))

    loader = LoaderConfig(
        source_directory=_resolve_path(
            _require(loader_raw, "loader", "source_directory"), base_dir
        ),
        extension=extension,
        sql_mode=_optional_str(loader_raw, "sql_mode", DEFAULT_SQL_MODE),
        character_set=_optional_str(loader_raw, "character_set", DEFAULT_CHARACTER_SET),
        collation=_optional_str(loader_raw, "collate", DEFAULT_COLLATION),
        constants=constants,
    )
    return Config(
        database=database,
        loader=loader,
        metadata_path=metadata_path,
        mangler=mangler,
    )


def load_config(path: Path | str = DEFAULT_CONFIG_FILE) -> Config:
    """Read and validate the JSON configuration file at *path*."""

    load_dotenv()
    config_file = Path(path).expanduser().resolve()
    if not config_file.is_file():
        raise ConfigError(Messages.ERROR_CONFIG_NOT_FOUND.format(path=config_file))
    try:
        raw = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(
            Messages.ERROR_CONFIG_INVALID.format(path=config_file, reason=exc)
        ) from exc
    config = config_from_mapping(raw, base_dir=config_file.parent)
    config.config_path = config_file
    return config
