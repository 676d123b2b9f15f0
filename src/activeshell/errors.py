"""Exception types for shell execution.

Non-zero exits and timeouts are normally reported through
``ExecutionResult.status`` so partial output survives. The exceptions here
cover failures that leave no result to report (bad arguments, spawn
failures, closed sessions) plus opt-in raising via
``ExecutionResult.raise_for_status()``.
"""

from __future__ import annotations


class ShellToolError(Exception):
    """Base class for all activeshell errors."""


class CommandValidationError(ShellToolError):
    """Tool arguments failed validation before anything was spawned."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class SpawnError(ShellToolError):
    """The OS could not create the shell process."""


class SessionClosedError(ShellToolError):
    """A command was sent to a session that is no longer active."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id!r} is not active")
        self.session_id = session_id


class CommandExecutionError(ShellToolError):
    """The command ran and exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int | None, output: str) -> None:
        super().__init__(f"Command exited with code {exit_code}: {command}")
        self.command = command
        self.exit_code = exit_code
        self.output = output


class CommandTimeoutError(ShellToolError):
    """The command did not finish within its timeout and was killed."""

    def __init__(self, command: str, timeout_ms: int | None) -> None:
        super().__init__(f"Command timeout after {timeout_ms}ms: {command}")
        self.command = command
        self.timeout_ms = timeout_ms
