"""Value types for remembrall: stored memories and parsed commands."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Function(Enum):
    """What a single invocation should do. Values are the CLI literals."""

    ADD = "add"
    PEEK = "peek"
    CLEAR = "clear"


class Verbosity(Enum):
    NORMAL = "normal"
    SILENT = "silent"
    VERBOSE = "verbose"


@dataclass(frozen=True)
class Memory:
    """A stored note, optionally tagged with a project."""

    id: int
    task: str
    project: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Memory":
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            id=row["id"],
            task=row["task"],
            project=row["project"] or "",
            created_at=created_at,
        )

    def describe(self, verbose: bool = False) -> str:
        """Render as ``"task" -- project -- date`` (project and date optional)."""
        line = f'"{self.task}"'
        if self.project:
            line += f" -- {self.project}"
        if verbose:
            line += f" -- {self.created_at.date().isoformat()}"
        return line


@dataclass(frozen=True)
class Command:
    """The parsed intent for one invocation."""

    function: Function
    verbosity: Verbosity = Verbosity.NORMAL
    project: Optional[str] = None
    task: Optional[str] = None
    all: bool = False
    dry_run: bool = False
    ignored_flags: tuple[str, ...] = ()

    @property
    def is_silent(self) -> bool:
        return self.verbosity is Verbosity.SILENT

    @property
    def is_verbose(self) -> bool:
        return self.verbosity is Verbosity.VERBOSE
