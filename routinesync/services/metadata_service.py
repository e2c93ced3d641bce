"""Persistent per-routine metadata shared between loader runs."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from ..errors import MetadataCorruptError, MetadataWriteError
from ..text import Messages

_REQUIRED_FIELDS = ("routine_type", "designation", "signature")


@dataclass(frozen=True, slots=True)
class RoutineParameter:
    name: str
    mode: str
    data_type: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "mode": self.mode, "type": self.data_type}


@dataclass(slots=True)
class RoutineMetadataRecord:
    routine_name: str
    routine_type: str
    designation: str
    signature: str
    sql_mode: str
    character_set: str
    collation: str
    return_type: str | None = None
    parameters: list[RoutineParameter] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "routine_name": self.routine_name,
            "routine_type": self.routine_type,
            "designation": self.designation,
            "return": self.return_type,
            "parameters": [parameter.to_dict() for parameter in self.parameters],
            "signature": self.signature,
            "sql_mode": self.sql_mode,
            "character_set": self.character_set,
            "collation": self.collation,
        }

    @classmethod
    def from_dict(cls, routine_name: str, data: Mapping[str, Any]) -> "RoutineMetadataRecord":
        """Build a record from its JSON form; unknown keys are ignored."""
        if not isinstance(data, dict):
            raise ValueError(f"record for '{routine_name}' is not an object")
        missing = [key for key in _REQUIRED_FIELDS if not isinstance(data.get(key), str)]
        if missing:
            raise ValueError(
                f"record for '{routine_name}' lacks {', '.join(missing)}"
            )
        raw_parameters = data.get("parameters") or []
        if not isinstance(raw_parameters, list):
            raise ValueError(f"parameters of '{routine_name}' is not a list")
        parameters: list[RoutineParameter] = []
        for item in raw_parameters:
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                raise ValueError(f"malformed parameter in '{routine_name}'")
            parameters.append(
                RoutineParameter(
                    name=item["name"],
                    mode=str(item.get("mode") or "in"),
                    data_type=str(item.get("type") or ""),
                )
            )
        return_type = data.get("return")
        return cls(
            routine_name=routine_name,
            routine_type=data["routine_type"],
            designation=data["designation"],
            signature=data["signature"],
            sql_mode=str(data.get("sql_mode") or ""),
            character_set=str(data.get("character_set") or ""),
            collation=str(data.get("collation") or ""),
            return_type=str(return_type) if return_type is not None else None,
            parameters=parameters,
        )


def load_metadata(path: Path) -> dict[str, RoutineMetadataRecord]:
    """Load the metadata snapshot; a missing file yields an empty mapping."""

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as exc:
        raise MetadataCorruptError(
            Messages.ERROR_METADATA_CORRUPT.format(path=path, reason=exc)
        ) from exc

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MetadataCorruptError(
            Messages.ERROR_METADATA_CORRUPT.format(path=path, reason=exc)
        ) from exc
    if not isinstance(raw, dict):
        raise MetadataCorruptError(
            Messages.ERROR_METADATA_CORRUPT.format(
                path=path, reason="top level value is not an object"
            )
        )

    records: dict[str, RoutineMetadataRecord] = {}
    for routine_name, data in raw.items():
        try:
            records[routine_name] = RoutineMetadataRecord.from_dict(routine_name, data)
        except ValueError as exc:
            raise MetadataCorruptError(
                Messages.ERROR_METADATA_CORRUPT.format(path=path, reason=exc)
            ) from exc
    return records


def serialize_metadata(records: Mapping[str, RoutineMetadataRecord]) -> str:
    payload = {name: records[name].to_dict() for name in sorted(records)}
    return json.dumps(payload, indent=4, sort_keys=True, ensure_ascii=False) + "\n"


def save_metadata(path: Path, records: Mapping[str, RoutineMetadataRecord]) -> None:
    """Write the snapshot atomically: temporary file first, then rename into place."""

    content = serialize_metadata(records)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise MetadataWriteError(
            Messages.ERROR_METADATA_WRITE.format(path=path, reason=exc)
        ) from exc
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
