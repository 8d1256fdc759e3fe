"""CLI for remembrall.

Remember, peek at and forget short notes, optionally tagged by project.
Notes live in a single SQLite file in the per-user data directory.

Tokens are handed to ``remembrall.parser`` untouched, so the typer command
declares no options of its own: ``-h``/``-V`` are only global flags in
first position, and values such as ``-p=home`` are never split by click.
"""

import logging
import sys
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import get_log_level
from .db import open_database
from .errors import ParseError, RemembrallError
from .executor import execute, validate
from .models import Command
from .parser import GlobalFlag, parse, parse_global_flag


logger = logging.getLogger(__name__)

# Main help text - shown with `remembrall --help`
MAIN_HELP = """\
Usage: remembrall COMMAND [FLAGS]

Remember things so you don't have to.

Commands:
  add TASK   Add memory to your collection (supports --project)
  peek       Show what you're currently remembering (supports --all, --project)
  clear      Forget memories (supports --all, --project)

Command Flags:
  -p, --project NAME   Tag and filter memories by project name
                       (supported by: add, peek, clear)
  -a, --all            Apply operation to all memories
                       (supported by: peek, clear)

Global Flags:
  -h, --help           Show help information
  -V, --version        Show version information
  -v, --verbose        Enable verbose output
  -s, --silent         Enable silent mode
  -n, --dry-run        Perform dry run without making changes

EXAMPLES:
  remembrall add "buy milk"
  remembrall add "buy eggs" -p errands
  remembrall peek --all --project errands
  remembrall clear -p errands --dry-run

DATABASE:
  Default location: per-user data directory (~/.local/share/rmbrl/rmbrl.db on Linux)
  Override with: REMEMBRALL_DB env var
"""

USAGE_HINT = "Run 'remembrall --help' for usage."

app = typer.Typer(
    name="remembrall",
    add_completion=False,
)

err_console = Console(stderr=True, highlight=False)


def _warn_ignored(command: Command) -> None:
    if command.ignored_flags and not command.is_silent:
        typer.echo(f"Warning: Ignoring flags: {', '.join(command.ignored_flags)}", err=True)


def _print_command(command: Command) -> None:
    """Dump the parsed command (verbose mode)."""
    table = Table(title="Parsed command", min_width=40, show_header=True, header_style="bold")
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("function", command.function.value)
    table.add_row("task", str(command.task))
    table.add_row("project", str(command.project))
    table.add_row("all", str(command.all).lower())
    table.add_row("dry-run", str(command.dry_run).lower())
    table.add_row("verbosity", command.verbosity.value)
    err_console.print(table)


def _fail(error: RemembrallError) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    if isinstance(error, ParseError):
        typer.echo(USAGE_HINT, err=True)
    return typer.Exit(1)


@app.command(
    add_help_option=False,
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
)
def run(
    tokens: Annotated[
        Optional[list[str]],
        typer.Argument(
            help="Command (add, peek, clear) followed by its task and flags.",
            show_default=False,
        ),
    ] = None,
) -> None:
    """Remember things so you don't have to."""
    args = list(tokens or [])

    flag = parse_global_flag(args)
    if flag is GlobalFlag.HELP:
        typer.echo(MAIN_HELP)
        raise typer.Exit()
    if flag is GlobalFlag.VERSION:
        typer.echo(f"remembrall {__version__}")
        raise typer.Exit()

    try:
        command = parse(args)
    except ParseError as exc:
        raise _fail(exc)

    _warn_ignored(command)
    logging.getLogger("remembrall").setLevel(logging.DEBUG if command.is_verbose else logging.NOTSET)
    if command.is_verbose:
        _print_command(command)

    try:
        validate(command)
        with open_database() as store:
            execute(command, store)
    except RemembrallError as exc:
        logger.debug("Command %s failed", command.function.value, exc_info=True)
        raise _fail(exc)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    """Entry point for the CLI."""
    _setup_logging(get_log_level())
    app()


if __name__ == "__main__":
    main()
