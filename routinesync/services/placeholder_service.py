"""Placeholder table construction and substitution.

Placeholders are ``@...@`` tokens in routine source. Two families exist:

* column types, ``@[schema.]table.column%type@``, resolved from
  ``information_schema.COLUMNS``;
* constants, ``@NAME@``, taken from the configured constant mapping.

The table is built once per run and applied as one regex pass per routine.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING

from ..db import quote_string, uses_backslash_escapes
from ..errors import PlaceholderError
from ..text import Messages

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..db import DataLayer

PLACEHOLDER_PATTERN = re.compile(
    r"@[A-Za-z0-9_$]+(?:\.[A-Za-z0-9_$]+)*(?:%type)?@",
    re.IGNORECASE,
)
_NUMERIC = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

COLUMN_TYPES_QUERY = """
select table_name                                    table_name
,      column_name                                   column_name
,      column_type                                   column_type
,      character_set_name                            character_set_name
,      null                                          table_schema
from   information_schema.COLUMNS
where  table_schema = database()
union all
select table_name                                    table_name
,      column_name                                   column_name
,      column_type                                   column_type
,      character_set_name                            character_set_name
,      table_schema                                  table_schema
from   information_schema.COLUMNS
order by table_schema
,        table_name
,        column_name"""


class PlaceholderMap(Mapping[str, str]):
    """Immutable, case-insensitive mapping from placeholder token to replacement."""

    __slots__ = ("_pairs",)

    def __init__(self, pairs: Mapping[str, str] | None = None) -> None:
        self._pairs = {key.upper(): value for key, value in (pairs or {}).items()}

    def __getitem__(self, key: str) -> str:
        return self._pairs[key.upper()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.upper() in self._pairs

    def __iter__(self) -> Iterator[str]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"PlaceholderMap({len(self._pairs)} entries)"

    def substitute(self, text: str) -> str:
        """Replace every placeholder token in *text*.

        Raises PlaceholderError listing all tokens without a replacement.
        """

        unknown: list[str] = []

        def _replace(match: re.Match[str]) -> str:
            token = match.group(0)
            value = self._pairs.get(token.upper())
            if value is None:
                if token not in unknown:
                    unknown.append(token)
                return token
            return value

        resolved = PLACEHOLDER_PATTERN.sub(_replace, text)
        if unknown:
            raise PlaceholderError(
                Messages.ERROR_UNKNOWN_PLACEHOLDERS.format(names=", ".join(unknown))
            )
        return resolved


def _column_key(row: Mapping[str, object]) -> str:
    key = "@"
    if row.get("table_schema") is not None:
        key += f"{row['table_schema']}."
    key += f"{row['table_name']}.{row['column_name']}%type@"
    return key.upper()


def read_column_types(db: "DataLayer") -> dict[str, str]:
    """Return column type placeholders for the current schema and all schemas."""

    pairs: dict[str, str] = {}
    for row in db.execute_rows(COLUMN_TYPES_QUERY):
        value = str(row["column_type"])
        if row.get("character_set_name") is not None:
            value += f" character set {row['character_set_name']}"
        pairs[_column_key(row)] = value
    return pairs


def format_constant(value: str | int | float, *, backslash_escapes: bool = True) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return repr(value) if isinstance(value, float) else str(value)
    text = str(value)
    if _NUMERIC.match(text.strip()):
        return text.strip()
    return quote_string(text, backslash_escapes=backslash_escapes)


def constant_placeholders(
    constants: Mapping[str, str | int | float] | None,
    *,
    sql_mode: str = "",
) -> dict[str, str]:
    """Return ``@NAME@`` placeholders for the configured constants.

    String literals are escaped for a session running with *sql_mode*.
    """

    if not constants:
        return {}
    backslash_escapes = uses_backslash_escapes(sql_mode)
    return {
        f"@{name}@".upper(): format_constant(value, backslash_escapes=backslash_escapes)
        for name, value in sorted(constants.items())
    }


def build_placeholder_map(
    db: "DataLayer",
    constants: Mapping[str, str | int | float] | None = None,
    *,
    sql_mode: str = "",
) -> PlaceholderMap:
    pairs = read_column_types(db)
    # Column keys always contain '.' and '%TYPE', so constants cannot shadow them.
    pairs.update(constant_placeholders(constants, sql_mode=sql_mode))
    return PlaceholderMap(pairs)
