"""One-off command execution in a disposable shell process."""

from __future__ import annotations

import asyncio
import os
import time
from typing import TYPE_CHECKING

from activeshell.config import ShellConfig, get_config
from activeshell.logging import get_logger
from activeshell.terminal.process import ProcessControl, get_process_control
from activeshell.terminal.result import ExecutionResult, truncate_output
from activeshell.terminal.shell import ShellSpec, resolve_shell

if TYPE_CHECKING:
    from asyncio.subprocess import Process

log = get_logger("executor")

_READ_CHUNK = 64 * 1024


class CommandExecutor:
    """Run single commands, each in its own short-lived shell process.

    Nothing is shared between calls: every ``execute`` spawns, waits and reaps
    its own process tree.
    """

    def __init__(
        self,
        shell: ShellSpec | None = None,
        process_control: ProcessControl | None = None,
        default_cwd: str | None = None,
        config: ShellConfig | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            shell: Shell to run commands with. Resolved from the host if None.
            process_control: Tree-kill strategy. Chosen from the shell's platform if None.
            default_cwd: Working directory when a call gives none (process cwd if None).
            config: Execution defaults. Uses the global config if None.
        """
        self._shell = shell or resolve_shell()
        self._control = process_control or get_process_control(self._shell.platform)
        self._default_cwd = default_cwd
        self._config = config or get_config().shell

    @property
    def shell(self) -> ShellSpec:
        return self._shell

    async def execute(
        self,
        command: str,
        timeout_ms: int | None = None,
        working_dir: str | None = None,
    ) -> ExecutionResult:
        """Execute ``command`` once and wait for it.

        Args:
            command: Command line in the shell's own syntax.
            timeout_ms: Kill the process tree after this many milliseconds.
                Uses the configured default if None.
            working_dir: Directory to run in.

        Returns:
            ExecutionResult with status "ok", "error" or "timeout". Spawn
            failures come back as status "error" with exit code 127/126/1.
        """
        if timeout_ms is None:
            timeout_ms = self._config.default_timeout_ms
        cwd = working_dir or self._default_cwd
        start_time = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start_time) * 1000

        env = os.environ.copy()
        env.update(self._config.env)

        try:
            process = await asyncio.create_subprocess_exec(
                *self._shell.one_shot_args(command),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,  # Merge stderr into stdout
                cwd=cwd,
                env=env,
                **self._control.spawn_options(),
            )
        except FileNotFoundError:
            if cwd and not os.path.isdir(cwd):
                message = f"Working directory not found: {cwd}"
            else:
                message = f"Shell not found: {self._shell.path}"
            return self._spawn_failure(command, 127, message, elapsed_ms(), timeout_ms)
        except PermissionError:
            return self._spawn_failure(
                command, 126, f"Permission denied: {self._shell.path}", elapsed_ms(), timeout_ms
            )
        except OSError as e:
            return self._spawn_failure(command, 1, f"OS error: {e}", elapsed_ms(), timeout_ms)

        log.debug("Spawned pid %d for one-off command: %s", process.pid, command)
        chunks: list[bytes] = []

        try:
            try:
                exit_code = await asyncio.wait_for(
                    self._collect(process, chunks), timeout=timeout_ms / 1000
                )
            except asyncio.TimeoutError:
                await self._control.kill_tree(process)
                log.warning("One-off command timed out after %dms: %s", timeout_ms, command)
                partial = _decode(chunks)
                note = f"Command timed out after {timeout_ms}ms"
                output, truncated = truncate_output(
                    f"{partial}\n{note}" if partial else note, self._config.max_output_chars
                )
                return ExecutionResult(
                    command=command,
                    exit_code=None,
                    output=output,
                    truncated=truncated,
                    status="timeout",
                    signal=self._control.kill_signal_name,
                    duration_ms=elapsed_ms(),
                    timeout_ms=timeout_ms,
                )
        finally:
            # Cancellation or any other escape still reaps the tree
            if process.returncode is None:
                await self._control.kill_tree(process)

        output, truncated = truncate_output(_decode(chunks), self._config.max_output_chars)
        return ExecutionResult(
            command=command,
            exit_code=exit_code,
            output=output,
            truncated=truncated,
            status="ok" if exit_code == 0 else "error",
            signal=None,
            duration_ms=elapsed_ms(),
            timeout_ms=timeout_ms,
        )

    @staticmethod
    async def _collect(process: Process, chunks: list[bytes]) -> int:
        assert process.stdout is not None
        while True:
            chunk = await process.stdout.read(_READ_CHUNK)
            if not chunk:
                break
            chunks.append(chunk)
        return await process.wait()

    @staticmethod
    def _spawn_failure(
        command: str, exit_code: int, message: str, duration_ms: float, timeout_ms: int
    ) -> ExecutionResult:
        log.error("Failed to spawn one-off command %r: %s", command, message)
        return ExecutionResult(
            command=command,
            exit_code=exit_code,
            output=message,
            truncated=False,
            status="error",
            signal=None,
            duration_ms=duration_ms,
            timeout_ms=timeout_ms,
        )


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")
