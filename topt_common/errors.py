"""Shared error taxonomy for task-optimizer."""

from __future__ import annotations

from typing import Any, Mapping


def _normalize_context_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_context_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a JSON-friendly copy of an error context mapping."""
    return {key: _normalize_context_value(val) for key, val in context.items()}


class TaskOptimizerError(Exception):
    """Base error type for typed failure handling."""

    #: Process exit code used when the error reaches the CLI.
    exit_code: int = 1
    #: Whether the error aborts the whole run or only the current resource.
    fatal: bool = True

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return self.__class__.__name__


class UsageError(TaskOptimizerError):
    """Malformed command or arguments."""

    exit_code = 2


class ElevationMissing(TaskOptimizerError):
    """No elevation mechanism exists at all (not root, no sudo binary)."""


class PrivilegeUnavailable(TaskOptimizerError):
    """An elevated write was needed but the capability was not granted."""

    exit_code = 0
    fatal = False


class ResourceUnavailable(TaskOptimizerError):
    """A tunable's control path is missing, unreadable or unwritable."""

    exit_code = 0
    fatal = False


class NoActiveSession(TaskOptimizerError):
    """Nothing was captured for the invoking user."""

    exit_code = 0
    fatal = False


class AlreadyActive(TaskOptimizerError):
    """A session already exists for the invoking user."""


class SnapshotStoreError(TaskOptimizerError):
    """The snapshot store could not be created or written."""


def error_to_payload(error: TaskOptimizerError) -> dict[str, Any]:
    """Convert an error to a report payload."""
    return {
        "error_type": error.error_type,
        "error": str(error),
        "error_context": error.context,
    }
