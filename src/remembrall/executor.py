"""Run a parsed ``Command`` against the memory store."""

import logging
from typing import Callable, Iterable, Optional

import typer

from .db import MemoryStore
from .errors import NotFoundError, ValidationError, ValidationErrorKind
from .models import Command, Function, Memory


logger = logging.getLogger(__name__)

MAX_FIELD_BYTES = 256


def _check_length(field: str, value: Optional[str]) -> None:
    if value is not None and len(value.encode("utf-8")) > MAX_FIELD_BYTES:
        raise ValidationError(ValidationErrorKind.FIELD_TOO_LONG, field, value, MAX_FIELD_BYTES)


def validate(command: Command) -> None:
    """Reject commands that must not reach the store.

    Raises:
        ValidationError: missing task for ``add``, or a task/project
            longer than 256 bytes.
    """
    if command.function is Function.ADD:
        if command.task is None:
            raise ValidationError(ValidationErrorKind.MISSING_TASK, "task")
        _check_length("task", command.task)
    _check_length("project", command.project)


def _notice(command: Command, message: str) -> None:
    """Informational line on stderr, hidden in silent mode."""
    if not command.is_silent:
        typer.echo(message, err=True)


def _verbose(command: Command, message: str) -> None:
    if command.is_verbose:
        typer.echo(message, err=True)


def _scope(command: Command) -> str:
    if command.project is None:
        return ""
    if command.project == "":
        return " without a project"
    return f" in project '{command.project}'"


def _output_memories(command: Command, header: str, memories: Iterable[Memory]) -> int:
    """Print a header and one line per memory. Returns the line count."""
    if not command.is_silent:
        typer.echo(header)

    shown = 0
    for memory in memories:
        typer.echo(f"  {memory.describe(verbose=command.is_verbose)}")
        shown += 1
    return shown


def _add(command: Command, store: MemoryStore) -> None:
    task = command.task
    _verbose(command, f"Remembering \"{task}\"{_scope(command)}")

    if command.dry_run:
        _notice(command, "Performing dry run. Memory will NOT be remembered!")
        memory_id = store.with_dry_run(lambda: store.insert(task, command.project))
    else:
        memory_id = store.insert(task, command.project)

    logger.debug("Inserted memory id=%s", memory_id)
    typer.echo(f'"{task}" was added to your memory!')
    _verbose(command, f"Memory id: {memory_id}")


def _peek(command: Command, store: MemoryStore) -> None:
    if command.all:
        _verbose(command, f"Peeking at all memories{_scope(command)}")
        memories: Iterable[Memory] = store.select_all(command.project)
    else:
        _verbose(command, f"Peeking at the most recent memory{_scope(command)}")
        latest = store.select_latest(command.project)
        memories = [latest] if latest is not None else []

    shown = _output_memories(command, "Currently remembering:", memories)
    _verbose(command, f"Matched {shown} of {store.count()} stored memories")


def _clear(command: Command, store: MemoryStore) -> None:
    if command.all:
        _verbose(command, f"Forgetting all memories{_scope(command)}")
    else:
        _verbose(command, f"Forgetting the most recent memory{_scope(command)}")

    def forget() -> list[Memory]:
        if command.all:
            return store.delete_all(command.project)

        with store.transaction():
            latest = store.select_latest(command.project)
            if latest is None:
                raise NotFoundError(command.project)
            _verbose(command, f"Found memory: {latest.describe(verbose=True)}")
            deleted = store.delete_by_id(latest.id)
        return [deleted] if deleted is not None else []

    if command.dry_run:
        _notice(command, "Performing dry run. Memory will NOT be forgotten!")
        forgotten = store.with_dry_run(forget)
    else:
        forgotten = forget()

    _output_memories(command, "Forgotten memories:", forgotten)


HANDLERS: dict[Function, Callable[[Command, MemoryStore], None]] = {
    Function.ADD: _add,
    Function.PEEK: _peek,
    Function.CLEAR: _clear,
}


def execute(command: Command, store: MemoryStore) -> None:
    """Validate and run one command.

    Raises:
        ValidationError: see ``validate``; raised before the store is touched
        StoreError: the store failed; under dry run nothing is persisted
        NotFoundError: ``clear`` without ``--all`` matched no memory
    """
    validate(command)
    HANDLERS[command.function](command, store)
