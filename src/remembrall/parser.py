"""Turn a raw argument list into a ``Command``.

Token 0 picks the function. The rest are scanned left to right and the
first matching rule wins:

1. ``--all``/``-a`` (not for ``add``)
2. ``--dry-run``/``-n``
3. ``--verbose``/``-v``
4. ``--silent``/``-s``
5. ``-p NAME``, ``-p=NAME``, ``--project NAME``, ``--project=NAME``
6. the first bare token becomes the task (``add`` only, once)
7. anything else is collected in ``ignored_flags``

Flags are matched before the bare-token rule so option-like tokens never
end up as the task, and ``add "text" extra`` never appends ``extra``.
"""

from enum import Enum
from typing import Optional, Sequence

from .errors import ParseError, ParseErrorKind
from .models import Command, Function, Verbosity


ALL_FLAGS = ("--all", "-a")
DRY_RUN_FLAGS = ("--dry-run", "-n")
VERBOSE_FLAGS = ("--verbose", "-v")
SILENT_FLAGS = ("--silent", "-s")
PROJECT_FLAGS = ("--project", "-p")

HELP_FLAGS = ("--help", "-h")
VERSION_FLAGS = ("--version", "-V")

FUNCTIONS: dict[str, Function] = {function.value: function for function in Function}


class GlobalFlag(Enum):
    HELP = "help"
    VERSION = "version"


def parse_global_flag(tokens: Sequence[str]) -> Optional[GlobalFlag]:
    """Detect --help/--version in first position, before any command."""
    if not tokens:
        return None
    if tokens[0] in HELP_FLAGS:
        return GlobalFlag.HELP
    if tokens[0] in VERSION_FLAGS:
        return GlobalFlag.VERSION
    return None


def resolve_function(token: Optional[str]) -> Function:
    """Map the first token to a function or raise ``UNKNOWN_COMMAND``."""
    function = FUNCTIONS.get(token) if token is not None else None
    if function is None:
        raise ParseError(ParseErrorKind.UNKNOWN_COMMAND, token)
    return function


def _split_inline_project(token: str) -> Optional[str]:
    """Return NAME for ``-p=NAME``/``--project=NAME``, else None."""
    flag, sep, value = token.partition("=")
    if sep and flag in PROJECT_FLAGS:
        return value
    return None


def parse(tokens: Sequence[str]) -> Command:
    """Parse the tokens following the program name.

    Raises:
        ParseError: unknown/missing command, or a split project flag
            without a usable value.
    """
    function = resolve_function(tokens[0] if tokens else None)

    verbosity = Verbosity.NORMAL
    project: Optional[str] = None
    task: Optional[str] = None
    all_items = False
    dry_run = False
    ignored: list[str] = []

    i = 1
    while i < len(tokens):
        token = tokens[i]
        i += 1

        if token in ALL_FLAGS and function is not Function.ADD:
            all_items = True
            continue
        if token in DRY_RUN_FLAGS:
            dry_run = True
            continue
        if token in VERBOSE_FLAGS:
            verbosity = Verbosity.VERBOSE
            continue
        if token in SILENT_FLAGS:
            verbosity = Verbosity.SILENT
            continue

        inline = _split_inline_project(token)
        if inline is not None:
            project = inline
            continue
        if token in PROJECT_FLAGS:
            # peek -p name  -> ok
            # peek -p --all -> error
            if i < len(tokens) and not tokens[i].startswith("-"):
                project = tokens[i]
                i += 1
                continue
            raise ParseError(ParseErrorKind.MISSING_PROJECT_VALUE, token)

        if function is Function.ADD and task is None and not token.startswith("-"):
            task = token
            continue

        ignored.append(token)

    return Command(
        function=function,
        verbosity=verbosity,
        project=project,
        task=task,
        all=all_items,
        dry_run=dry_run,
        ignored_flags=tuple(ignored),
    )
