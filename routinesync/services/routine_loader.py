"""Loading of a single stored routine source file."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..db import quote_string
from ..errors import DatabaseError, PlaceholderError, RoutineSourceError
from ..text import Messages
from .metadata_service import RoutineMetadataRecord, RoutineParameter

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..db import DataLayer
    from .catalog_service import RdbmsRoutineDescriptor
    from .placeholder_service import PlaceholderMap
    from .source_service import SourceEntry

DESIGNATION_TYPES: tuple[str, ...] = (
    "bulk",
    "bulk_insert",
    "function",
    "log",
    "none",
    "row0",
    "row1",
    "rows",
    "rows_with_index",
    "rows_with_key",
    "singleton0",
    "singleton1",
    "table",
)

_CREATE = re.compile(
    r"\bcreate\s+(?:definer\s*=\s*\S+\s+)?(procedure|function)\s+"
    r"(?:`([^`]+)`|([A-Za-z0-9_$]+))\s*\(",
    re.IGNORECASE,
)
_DESIGNATION = re.compile(r"^\s*--\s*type\s*:\s*([A-Za-z0-9_]+)", re.IGNORECASE | re.MULTILINE)
_PARAMETER = re.compile(
    r"^(?:(in|out|inout)\s+)?(?:`([^`]+)`|([A-Za-z0-9_$]+))\s+(.+)$",
    re.IGNORECASE | re.DOTALL,
)
_RETURNS = re.compile(
    r"\s*returns\s+(.+?)\s*"
    r"(?=\b(?:deterministic|not\s+deterministic|reads\s+sql|modifies\s+sql|no\s+sql"
    r"|contains\s+sql|sql\s+security|comment|language|begin|return)\b|$)",
    re.IGNORECASE | re.DOTALL,
)
_LINE_COMMENT = re.compile(r"--[^\n]*")


class LoadStatus(str, Enum):
    SKIPPED = "skipped"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(slots=True)
class RoutineLoadResult:
    status: LoadStatus
    record: RoutineMetadataRecord | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != LoadStatus.ERROR and self.record is not None


@dataclass(slots=True)
class RoutineSource:
    routine_name: str
    routine_type: str
    designation: str
    sql: str
    signature: str
    return_type: str | None = None
    parameters: list[RoutineParameter] = field(default_factory=list)


def _collapse(text: str) -> str:
    return " ".join(_LINE_COMMENT.sub(" ", text).split())


def _split_parameter_list(text: str, start: int) -> tuple[list[str], int]:
    """Split the parameter list opened just before *start*.

    Returns the raw parameter texts and the index after the closing parenthesis.
    """

    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    index = start
    length = len(text)
    while index < length:
        char = text[index]
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
        elif text.startswith("--", index):
            newline = text.find("\n", index)
            index = length if newline < 0 else newline
            continue
        elif text.startswith("/*", index):
            close = text.find("*/", index + 2)
            if close < 0:
                break
            index = close + 2
            continue
        elif char in "'\"`":
            quote = char
            current.append(char)
        elif char == "(":
            depth += 1
            current.append(char)
        elif char == ")":
            if depth == 0:
                parts.append("".join(current))
                return [part.strip() for part in parts if part.strip()], index + 1
            depth -= 1
            current.append(char)
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    raise RoutineSourceError(Messages.ERROR_ROUTINE_PARAMETERS)


def _parse_parameter(text: str, routine_type: str) -> RoutineParameter:
    match = _PARAMETER.match(text.strip())
    if match is None:
        raise RoutineSourceError(Messages.ERROR_ROUTINE_PARAMETER.format(text=_collapse(text)))
    mode = (match.group(1) or "in").lower()
    if routine_type == "function":
        mode = "in"
    return RoutineParameter(
        name=match.group(2) or match.group(3),
        mode=mode,
        data_type=_collapse(match.group(4)),
    )


def parse_routine_source(
    text: str,
    routine_name: str,
    placeholders: "PlaceholderMap",
) -> RoutineSource:
    """Resolve placeholders in *text* and extract the routine's declared shape."""

    sql = placeholders.substitute(text)

    create = _CREATE.search(sql)
    if create is None:
        raise RoutineSourceError(Messages.ERROR_ROUTINE_NOT_FOUND)
    routine_type = create.group(1).lower()
    actual_name = create.group(2) or create.group(3)
    if actual_name != routine_name:
        raise RoutineSourceError(
            Messages.ERROR_ROUTINE_NAME_MISMATCH.format(
                actual=actual_name, expected=routine_name
            )
        )

    raw_parameters, end = _split_parameter_list(sql, create.end())
    parameters = [_parse_parameter(item, routine_type) for item in raw_parameters]

    return_type: str | None = None
    if routine_type == "function":
        returns = _RETURNS.match(sql, end)
        if returns is None or not _collapse(returns.group(1)):
            raise RoutineSourceError(Messages.ERROR_RETURN_MISSING)
        return_type = _collapse(returns.group(1))

    designation_match = _DESIGNATION.search(sql)
    if designation_match is not None:
        designation = designation_match.group(1).lower()
    elif routine_type == "function":
        designation = "function"
    else:
        raise RoutineSourceError(Messages.ERROR_DESIGNATION_MISSING)
    if designation not in DESIGNATION_TYPES:
        raise RoutineSourceError(Messages.ERROR_DESIGNATION_UNKNOWN.format(value=designation))

    return RoutineSource(
        routine_name=routine_name,
        routine_type=routine_type,
        designation=designation,
        sql=sql,
        signature=hashlib.sha256(sql.encode("utf-8")).hexdigest(),
        return_type=return_type,
        parameters=parameters,
    )


def needs_reload(
    source: RoutineSource,
    old_record: RoutineMetadataRecord | None,
    descriptor: "RdbmsRoutineDescriptor | None",
    *,
    sql_mode: str,
    character_set: str,
    collation: str,
) -> bool:
    """Return True unless the stored routine provably matches *source*."""

    if old_record is None or descriptor is None:
        return True
    if old_record.signature != source.signature:
        return True
    if old_record.routine_type != source.routine_type:
        return True
    if descriptor.kind != source.routine_type:
        return True
    if descriptor.sql_mode != sql_mode:
        return True
    if descriptor.character_set_client != character_set:
        return True
    return descriptor.collation_connection != collation


def _record_for(
    source: RoutineSource,
    *,
    sql_mode: str,
    character_set: str,
    collation: str,
) -> RoutineMetadataRecord:
    return RoutineMetadataRecord(
        routine_name=source.routine_name,
        routine_type=source.routine_type,
        designation=source.designation,
        signature=source.signature,
        sql_mode=sql_mode,
        character_set=character_set,
        collation=collation,
        return_type=source.return_type,
        parameters=list(source.parameters),
    )


def load_routine(
    db: "DataLayer",
    entry: "SourceEntry",
    *,
    old_record: RoutineMetadataRecord | None,
    placeholders: "PlaceholderMap",
    descriptor: "RdbmsRoutineDescriptor | None",
    sql_mode: str,
    character_set: str,
    collation: str,
) -> RoutineLoadResult:
    """Load *entry* into the schema when it changed; never raises for file-level problems."""

    try:
        text = entry.path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return RoutineLoadResult(
            LoadStatus.ERROR, message=Messages.ERROR_READ_SOURCE.format(reason=exc)
        )

    try:
        source = parse_routine_source(text, entry.routine_name, placeholders)
    except (PlaceholderError, RoutineSourceError) as exc:
        return RoutineLoadResult(LoadStatus.ERROR, message=str(exc))

    if old_record is not None and not needs_reload(
        source,
        old_record,
        descriptor,
        sql_mode=sql_mode,
        character_set=character_set,
        collation=collation,
    ):
        return RoutineLoadResult(LoadStatus.SKIPPED, record=old_record)

    try:
        if descriptor is not None:
            db.execute_none(f"drop {descriptor.kind} if exists `{descriptor.routine_name}`")
        db.execute_none(f"set sql_mode = {quote_string(sql_mode)}")
        db.execute_none(
            f"set names {quote_string(character_set)} collate {quote_string(collation)}"
        )
        db.execute_none(source.sql)
    except DatabaseError as exc:
        return RoutineLoadResult(LoadStatus.ERROR, message=str(exc))

    return RoutineLoadResult(
        LoadStatus.LOADED,
        record=_record_for(
            source,
            sql_mode=sql_mode,
            character_set=character_set,
            collation=collation,
        ),
    )
