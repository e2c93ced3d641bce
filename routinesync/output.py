"""Helpers for rendering synchronization results on a rich console."""

from __future__ import annotations

import sys
from typing import Mapping

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .services.metadata_service import RoutineMetadataRecord
from .services.sync_service import SyncResult
from .text import Messages, Styles


def _encoding_supports(text: str, encoding: str | None) -> bool:
    if not encoding:
        return False
    try:
        text.encode(encoding)
    except (LookupError, UnicodeEncodeError):
        return False
    return True


def supports_unicode_output(console: Console | None = None) -> bool:
    sample = "✓✗"
    if console is not None and _encoding_supports(sample, console.encoding):
        return True
    return _encoding_supports(sample, sys.stdout.encoding)


def format_status_icon(passed: bool, console: Console | None = None) -> str:
    if supports_unicode_output(console):
        return "[green]✓[/green]" if passed else "[red]✗[/red]"
    return "[green]OK[/green]" if passed else "[red]X[/red]"


def styled(text: str, style: str) -> str:
    return f"[{style}]{escape(text)}[/{style}]"


def render_sync_result(console: Console, result: SyncResult) -> None:
    """Print loads, conflicts, drops, a summary line and every failing file."""

    for action in result.loaded:
        console.print(
            styled(
                Messages.INFO_ROUTINE_LOADED.format(kind=action.routine_type, name=action.routine_name),
                Styles.INFO,
            )
        )
    for method, paths in result.conflicts.items():
        console.print(styled(Messages.WARNING_NAME_CONFLICT.format(method=method), Styles.WARNING))
        for path in paths:
            console.print(styled(f"  {path}", Styles.WARNING))
    for action in result.dropped:
        console.print(
            styled(
                Messages.INFO_ROUTINE_DROPPED.format(kind=action.routine_type, name=action.routine_name),
                Styles.INFO,
            )
        )
    for failure in result.drop_failures:
        console.print(
            styled(
                Messages.WARNING_DROP_FAILED.format(
                    kind=failure.routine_type,
                    name=failure.routine_name,
                    reason=failure.reason,
                ),
                Styles.ERROR,
            )
        )

    error_count = len(result.errors) + len(result.drop_failures)
    summary = Messages.INFO_SUMMARY.format(
        loaded=len(result.loaded),
        skipped=len(result.skipped),
        dropped=len(result.dropped),
        errors=error_count,
        plural="" if error_count == 1 else "s",
    )
    icon = format_status_icon(result.ok, console)
    console.print(f"{icon} {styled(summary, Styles.SUCCESS if result.ok else Styles.ERROR)}")
    for error in result.errors:
        console.print(
            styled(Messages.ERROR_FILE.format(path=error.path, reason=error.reason), Styles.ERROR)
        )


def build_metadata_table(records: Mapping[str, RoutineMetadataRecord]) -> Table:
    table = Table(
        title=Messages.TABLE_TITLE,
        title_style=Styles.TITLE,
        header_style=Styles.TABLE_HEADER,
    )
    table.add_column(Messages.TABLE_HEADER_ROUTINE, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_TYPE)
    table.add_column(Messages.TABLE_HEADER_DESIGNATION)
    table.add_column(Messages.TABLE_HEADER_PARAMETERS, justify="right")
    table.add_column(Messages.TABLE_HEADER_SIGNATURE)
    for name in sorted(records):
        record = records[name]
        table.add_row(
            escape(name),
            record.routine_type,
            record.designation,
            str(len(record.parameters)),
            record.signature[:12],
        )
    return table
