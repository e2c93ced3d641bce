"""Snapshot of the routines currently stored in the schema."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..db import quote_string

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..db import DataLayer

ROUTINES_QUERY = """
select routine_name          routine_name
,      routine_type          routine_type
,      sql_mode              sql_mode
,      character_set_client  character_set_client
,      collation_connection  collation_connection
from   information_schema.ROUTINES
where  routine_schema = database()
order by routine_name"""

SQL_MODE_QUERY = "select @@sql_mode"
CHARACTER_SET_QUERY = "select @@character_set_client, @@collation_connection"


@dataclass(frozen=True, slots=True)
class RdbmsRoutineDescriptor:
    routine_name: str
    routine_type: str
    sql_mode: str
    character_set_client: str
    collation_connection: str

    @property
    def kind(self) -> str:
        return self.routine_type.lower()


def read_routine_catalog(db: "DataLayer") -> dict[str, RdbmsRoutineDescriptor]:
    """Return the stored routines of the current schema indexed by name."""

    rows = db.execute_rows(ROUTINES_QUERY)
    catalog: dict[str, RdbmsRoutineDescriptor] = {}
    for row in sorted(rows, key=lambda item: str(item["routine_name"])):
        descriptor = RdbmsRoutineDescriptor(
            routine_name=str(row["routine_name"]),
            routine_type=str(row["routine_type"]),
            sql_mode=str(row["sql_mode"] or ""),
            character_set_client=str(row["character_set_client"] or ""),
            collation_connection=str(row["collation_connection"] or ""),
        )
        catalog[descriptor.routine_name] = descriptor
    return catalog


def negotiate_sql_mode(db: "DataLayer", requested: str) -> str:
    """Set *requested* as the session SQL mode and return it as the server normalized it."""

    db.execute_none(f"set sql_mode = {quote_string(requested)}")
    return str(db.execute_singleton1(SQL_MODE_QUERY) or "")


def negotiate_character_set(db: "DataLayer", character_set: str, collation: str) -> tuple[str, str]:
    """Apply ``set names`` and return the client character set and collation the server reports.

    The server lower-cases both names and resolves aliases such as ``utf8``.
    """

    db.execute_none(f"set names {quote_string(character_set)} collate {quote_string(collation)}")
    row = db.execute_row1(CHARACTER_SET_QUERY)
    client_character_set, connection_collation = list(row.values())[:2]
    return str(client_character_set or ""), str(connection_collation or "")
