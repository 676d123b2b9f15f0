"""Shell execution result dataclass."""

from __future__ import annotations

from dataclasses import dataclass

from activeshell.errors import CommandExecutionError, CommandTimeoutError

TRUNCATION_NOTE = "\n... (output truncated)"


def truncate_output(output: str, limit: int) -> tuple[str, bool]:
    """Cap ``output`` at ``limit`` characters, appending a note when cut."""
    if len(output) <= limit:
        return output, False
    return output[:limit] + TRUNCATION_NOTE, True


@dataclass
class ExecutionResult:
    """Result of one command, one-off or inside a session.

    Attributes:
        command: The command text as submitted.
        exit_code: Process exit code (0 = success), or None if killed/timeout/closed.
        output: Combined stdout/stderr output (may be truncated).
        truncated: True if output was cut at the configured limit.
        status: "ok", "error", "timeout", or "closed".
        signal: How the process was killed, if it was (e.g., "SIGKILL").
        duration_ms: Wall-clock duration in milliseconds.
        timeout_ms: The timeout that applied, if any.
        session_id: Session the command ran in, None for one-off execution.
    """

    command: str
    exit_code: int | None
    output: str
    truncated: bool
    status: str  # "ok", "error", "timeout", "closed"
    signal: str | None
    duration_ms: float
    timeout_ms: int | None = None
    session_id: str | None = None

    @property
    def success(self) -> bool:
        """True if command completed with exit code 0."""
        return self.exit_code == 0

    @property
    def timed_out(self) -> bool:
        return self.status == "timeout"

    def raise_for_status(self) -> None:
        """Raise CommandTimeoutError or CommandExecutionError unless successful."""
        if self.timed_out:
            raise CommandTimeoutError(self.command, self.timeout_ms)
        if not self.success:
            raise CommandExecutionError(self.command, self.exit_code, self.output)

    def __repr__(self) -> str:
        if self.success:
            lines = self.output.count("\n") + 1 if self.output else 0
            return f"<ExecutionResult ok, {lines} lines>"
        return f"<ExecutionResult {self.status}, exit={self.exit_code}>"
