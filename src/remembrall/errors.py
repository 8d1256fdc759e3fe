"""Error types for remembrall.

Every fatal failure derives from ``RemembrallError`` so the CLI can map it
to a single ``Error: ...`` line and exit code 1.
"""

from enum import Enum
from typing import Optional


class RemembrallError(Exception):
    """Base class for all fatal remembrall errors."""


class ParseErrorKind(Enum):
    UNKNOWN_COMMAND = "unknown_command"
    MISSING_PROJECT_VALUE = "missing_project_value"


class ParseError(RemembrallError):
    """The argument list could not be turned into a command."""

    def __init__(self, kind: ParseErrorKind, token: Optional[str] = None) -> None:
        self.kind = kind
        self.token = token
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.kind is ParseErrorKind.MISSING_PROJECT_VALUE:
            return "Project flag provided but missing project name"
        if self.token is None:
            return "No command given"
        return f"Unknown command '{self.token}'"


class ValidationErrorKind(Enum):
    FIELD_TOO_LONG = "field_too_long"
    MISSING_TASK = "missing_task"


class ValidationError(RemembrallError):
    """A parsed command is not acceptable for execution."""

    def __init__(
        self,
        kind: ValidationErrorKind,
        field: str,
        value: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.field = field
        self.value = value
        self.limit = limit
        if kind is ValidationErrorKind.MISSING_TASK:
            message = 'Running "add" command but missing task description'
        else:
            message = f'{field.capitalize()} "{value}" exceeds char limit of {limit} bytes.'
        super().__init__(message)


class StoreError(RemembrallError):
    """The persistence layer failed. Carries the engine's message."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"Failed to {operation}: {message}")


class NotFoundError(RemembrallError):
    """No memory matched a command that needs one."""

    def __init__(self, project: Optional[str] = None) -> None:
        self.project = project
        message = "Failed to find memory to forget"
        if project is not None:
            message += f" in project '{project}'"
        super().__init__(message)
