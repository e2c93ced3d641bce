from __future__ import annotations

import re

import pytest

from routinesync.errors import DatabaseError

# Order in which the server reports sql_mode flags.
CANONICAL_SQL_MODE_ORDER = (
    "REAL_AS_FLOAT",
    "PIPES_AS_CONCAT",
    "ANSI_QUOTES",
    "IGNORE_SPACE",
    "ONLY_FULL_GROUP_BY",
    "NO_UNSIGNED_SUBTRACTION",
    "NO_DIR_IN_CREATE",
    "NO_AUTO_VALUE_ON_ZERO",
    "NO_BACKSLASH_ESCAPES",
    "STRICT_TRANS_TABLES",
    "STRICT_ALL_TABLES",
    "NO_ZERO_IN_DATE",
    "NO_ZERO_DATE",
    "ERROR_FOR_DIVISION_BY_ZERO",
    "TRADITIONAL",
    "NO_ENGINE_SUBSTITUTION",
    "PAD_CHAR_TO_FULL_LENGTH",
)

_SET_SQL_MODE = re.compile(r"^set sql_mode\s*=\s*'([^']*)'$", re.IGNORECASE)
_SET_NAMES = re.compile(r"^set names '([^']+)' collate '([^']+)'$", re.IGNORECASE)
_DROP = re.compile(r"^drop (procedure|function) if exists `?([A-Za-z0-9_$]+)`?$", re.IGNORECASE)
_CREATE = re.compile(
    r"\bcreate\s+(procedure|function)\s+`?([A-Za-z0-9_$]+)`?", re.IGNORECASE
)

# Names the server resolves to another character set or collation.
CHARACTER_SET_ALIASES = {"utf8": "utf8mb3", "utf8_general_ci": "utf8mb3_general_ci"}


def canonical_sql_mode(requested: str) -> str:
    flags = {flag.strip().upper() for flag in requested.split(",") if flag.strip()}
    return ",".join(flag for flag in CANONICAL_SQL_MODE_ORDER if flag in flags)


class FakeDataLayer:
    """In-memory stand-in for a MySQL schema reached through DataLayer."""

    def __init__(self) -> None:
        self.routines: dict[str, dict[str, str]] = {}
        self.columns: list[dict[str, object]] = []
        self.statements: list[str] = []
        self.sql_mode = ""
        self.character_set = "utf8mb4"
        self.collation = "utf8mb4_general_ci"
        self.fail_markers: set[str] = set()
        self.fail_drops: set[str] = set()
        self.fail_catalog = False
        self.closed = False

    def __enter__(self) -> "FakeDataLayer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    @property
    def created(self) -> list[str]:
        return [sql for sql in self.statements if _CREATE.search(sql)]

    def add_routine(
        self,
        name: str,
        kind: str = "PROCEDURE",
        *,
        sql_mode: str | None = None,
        character_set: str = "utf8mb4",
        collation: str = "utf8mb4_general_ci",
    ) -> None:
        self.routines[name] = {
            "routine_type": kind.upper(),
            "sql_mode": sql_mode if sql_mode is not None else self.sql_mode,
            "character_set_client": character_set,
            "collation_connection": collation,
            "sql": "",
        }

    def execute_none(self, sql: str) -> int:
        text = sql.strip()
        self.statements.append(text)
        for marker in self.fail_markers:
            if marker in text:
                raise DatabaseError("You have an error in your SQL syntax", code=1064, query=sql)

        match = _SET_SQL_MODE.match(text)
        if match:
            self.sql_mode = canonical_sql_mode(match.group(1))
            return 0
        match = _SET_NAMES.match(text)
        if match:
            character_set, collation = match.group(1).lower(), match.group(2).lower()
            self.character_set = CHARACTER_SET_ALIASES.get(character_set, character_set)
            self.collation = CHARACTER_SET_ALIASES.get(collation, collation)
            return 0
        match = _DROP.match(text)
        if match:
            name = match.group(2)
            if name in self.fail_drops:
                raise DatabaseError(f"Cannot drop {name}", code=1370, query=sql)
            self.routines.pop(name, None)
            return 0
        match = _CREATE.search(text)
        if match:
            name = match.group(2)
            if name in self.routines:
                raise DatabaseError(f"PROCEDURE {name} already exists", code=1304, query=sql)
            self.routines[name] = {
                "routine_type": match.group(1).upper(),
                "sql_mode": self.sql_mode,
                "character_set_client": self.character_set,
                "collation_connection": self.collation,
                "sql": text,
            }
            return 0
        raise DatabaseError(f"Unsupported statement: {text}", query=sql)

    def execute_rows(self, sql: str) -> list[dict[str, object]]:
        self.statements.append(sql.strip())
        if "information_schema.COLUMNS" in sql:
            current = [dict(row, table_schema=None) for row in self.columns]
            return current + [dict(row) for row in self.columns]
        if "information_schema.ROUTINES" in sql:
            if self.fail_catalog:
                raise DatabaseError("Lost connection to MySQL server", code=2013, query=sql)
            return [
                {
                    "routine_name": name,
                    "routine_type": routine["routine_type"],
                    "sql_mode": routine["sql_mode"],
                    "character_set_client": routine["character_set_client"],
                    "collation_connection": routine["collation_connection"],
                }
                for name, routine in sorted(self.routines.items())
            ]
        raise DatabaseError(f"Unsupported query: {sql}", query=sql)

    def execute_row1(self, sql: str) -> dict[str, object]:
        if sql.strip().lower() == "select @@sql_mode":
            self.statements.append(sql.strip())
            return {"@@sql_mode": self.sql_mode}
        if sql.strip().lower() == "select @@character_set_client, @@collation_connection":
            self.statements.append(sql.strip())
            return {
                "@@character_set_client": self.character_set,
                "@@collation_connection": self.collation,
            }
        rows = self.execute_rows(sql)
        if len(rows) != 1:
            raise DatabaseError("row count", query=sql)
        return rows[0]

    def execute_singleton1(self, sql: str) -> object:
        return next(iter(self.execute_row1(sql).values()))


@pytest.fixture
def fake_db() -> FakeDataLayer:
    return FakeDataLayer()


@pytest.fixture(autouse=True)
def _isolate_password_env(monkeypatch):
    monkeypatch.delenv("ROUTINESYNC_DB_PASSWORD", raising=False)
