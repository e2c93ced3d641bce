"""Thin data layer over a single SQLAlchemy connection to a MySQL instance.

All statements are sent through ``exec_driver_sql`` without bind parameters so
that routine bodies reach the server exactly as written (``%`` and ``:`` have
no special meaning). Every driver error is re-raised as
:class:`~routinesync.errors.DatabaseError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from .errors import DatabaseError
from .text import Messages

if TYPE_CHECKING:  # pragma: no cover - typing only
    from sqlalchemy.engine import Connection, Engine

    from .config import DatabaseConfig

_EXECUTION_OPTIONS = {"no_parameters": True}


def _error_code(exc: SQLAlchemyError) -> int | None:
    orig = getattr(exc, "orig", None)
    args = getattr(orig, "args", None)
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _error_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    args = getattr(orig, "args", None)
    if args and len(args) > 1 and isinstance(args[1], str):
        return args[1]
    if orig is not None:
        return str(orig)
    return str(exc)


def uses_backslash_escapes(sql_mode: str) -> bool:
    """Return False when *sql_mode* turns backslash into an ordinary character."""

    flags = {flag.strip().upper() for flag in sql_mode.split(",")}
    return "NO_BACKSLASH_ESCAPES" not in flags


def quote_string(value: str, *, backslash_escapes: bool = True) -> str:
    """Return *value* as a single-quoted SQL string literal.

    With *backslash_escapes* off only quotes are doubled, matching a session
    running with NO_BACKSLASH_ESCAPES.
    """

    escaped = value.replace("'", "''")
    if backslash_escapes:
        escaped = escaped.replace("\\", "\\\\")
    return f"'{escaped}'"


class DataLayer:
    """Executes SQL text on one connection and reports rows or affected counts."""

    def __init__(self, connection: "Connection", *, engine: "Engine | None" = None) -> None:
        self._connection = connection
        self._engine = engine

    def __enter__(self) -> "DataLayer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _execute(self, sql: str):
        try:
            return self._connection.exec_driver_sql(
                sql, execution_options=_EXECUTION_OPTIONS
            )
        except DBAPIError as exc:
            raise DatabaseError(
                _error_message(exc), code=_error_code(exc), query=sql
            ) from exc
        except SQLAlchemyError as exc:
            raise DatabaseError(str(exc), query=sql) from exc

    def execute_none(self, sql: str) -> int:
        """Run a statement that selects no rows and return the affected row count."""
        result = self._execute(sql)
        try:
            return max(result.rowcount, 0)
        finally:
            result.close()

    def execute_rows(self, sql: str) -> list[dict[str, Any]]:
        """Run a query and return all rows as dictionaries."""
        result = self._execute(sql)
        if not result.returns_rows:
            result.close()
            return []
        try:
            return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as exc:
            raise DatabaseError(str(exc), query=sql) from exc

    def execute_row1(self, sql: str) -> dict[str, Any]:
        """Run a query that must select exactly one row."""
        rows = self.execute_rows(sql)
        if len(rows) != 1:
            raise DatabaseError(
                Messages.ERROR_DB_ROW_COUNT.format(count=len(rows)), query=sql
            )
        return rows[0]

    def execute_singleton1(self, sql: str) -> Any:
        """Run a query that must select exactly one row and return its first column."""
        row = self.execute_row1(sql)
        return next(iter(row.values()))

    def close(self) -> None:
        try:
            self._connection.close()
        finally:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None


def build_url(settings: "DatabaseConfig", *, character_set: str) -> URL:
    return URL.create(
        "mysql+pymysql",
        username=settings.user,
        password=settings.password,
        host=settings.host,
        port=settings.port,
        database=settings.database,
        query={"charset": character_set},
    )


def connect(settings: "DatabaseConfig", *, character_set: str) -> DataLayer:
    """Open a single autocommit connection to the configured schema."""

    engine = create_engine(
        build_url(settings, character_set=character_set),
        isolation_level="AUTOCOMMIT",
        poolclass=NullPool,
    )
    try:
        connection = engine.connect()
    except SQLAlchemyError as exc:
        engine.dispose()
        raise DatabaseError(
            Messages.ERROR_DB_CONNECT.format(
                host=settings.host,
                port=settings.port,
                database=settings.database,
                reason=_error_message(exc),
            ),
            code=_error_code(exc),
        ) from exc
    return DataLayer(connection, engine=engine)
