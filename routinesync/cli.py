"""Command line interface for routinesync."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from . import __version__
from .api import read_metadata, run_loader
from .config import DEFAULT_CONFIG_FILE, load_config
from .errors import MetadataWriteError, RoutineSyncError
from .output import build_metadata_table, render_sync_result, styled
from .text import Messages, Styles
from .utils import format_path

console = Console()

app = typer.Typer(
    help=Messages.APP_HELP,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"routinesync v{__version__}")
        raise typer.Exit()


def _fail(message: str) -> NoReturn:
    console.print(styled(message, Styles.ERROR))
    raise typer.Exit(code=1)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help=Messages.HELP_VERSION,
    )
) -> None:
    """Global Typer callback for shared options."""
    return None


@app.command(help=Messages.HELP_LOAD)
def load(
    files: list[Path] | None = typer.Argument(
        None,
        help=Messages.HELP_LOAD_FILES,
        show_default=False,
    ),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--config",
        "-c",
        help=Messages.HELP_CONFIG_PATH,
    ),
) -> None:
    """Load stored routines and report every file that failed."""
    try:
        config = load_config(config_path)
    except RoutineSyncError as exc:
        _fail(str(exc))

    if files:
        plural = "" if len(files) == 1 else "s"
        console.print(
            styled(Messages.INFO_LOAD_LIST_RUNNING.format(count=len(files), plural=plural), Styles.INFO)
        )
    else:
        console.print(
            styled(
                Messages.INFO_LOAD_RUNNING.format(
                    path=format_path(config.loader.source_directory, Path.cwd())
                ),
                Styles.INFO,
            )
        )

    try:
        result = run_loader(config, files or None)
    except MetadataWriteError as exc:
        if exc.result is not None:
            render_sync_result(console, exc.result)
        console.print(styled(str(exc), Styles.ERROR))
        _fail(Messages.ERROR_METADATA_RERUN)
    except (RoutineSyncError, OSError) as exc:
        _fail(str(exc))

    console.print(styled(Messages.INFO_SQL_MODE.format(mode=result.sql_mode), Styles.INFO))
    render_sync_result(console, result)
    if result.metadata_path is not None:
        console.print(
            styled(Messages.INFO_METADATA_SAVED.format(path=result.metadata_path), Styles.SUCCESS)
        )
    if not result.ok:
        raise typer.Exit(code=1)


@app.command(help=Messages.HELP_SHOW)
def show(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--config",
        "-c",
        help=Messages.HELP_CONFIG_PATH,
    ),
) -> None:
    """Print the persisted metadata snapshot as a table."""
    try:
        config = load_config(config_path)
        records = read_metadata(config)
    except RoutineSyncError as exc:
        _fail(str(exc))

    if not records:
        console.print(
            styled(Messages.INFO_METADATA_EMPTY.format(path=config.metadata_path), Styles.INFO)
        )
        return
    console.print(build_metadata_table(records))


def run(argv: list[str] | None = None) -> None:
    """Entry point wrapper allowing optional argument override."""
    if argv is None:
        app()
    else:
        app(args=list(argv))
