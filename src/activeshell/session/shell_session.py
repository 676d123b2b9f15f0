"""A long-lived shell process that keeps state between commands."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from activeshell.config import ShellConfig, get_config
from activeshell.errors import SessionClosedError, SpawnError
from activeshell.logging import TRACE, get_logger
from activeshell.terminal.process import ProcessControl, get_process_control
from activeshell.terminal.result import ExecutionResult, truncate_output
from activeshell.terminal.sentinel import SentinelScanner, make_marker, wrap_command
from activeshell.terminal.shell import ShellSpec

if TYPE_CHECKING:
    from asyncio.subprocess import Process

log = get_logger("session")

_READ_CHUNK = 64 * 1024
# Lower bound on the post-EOF wait, so a plain `exit N` is reaped, not killed
_MIN_EOF_WAIT = 0.5


@dataclass
class SessionInfo:
    """Point-in-time description of a ShellSession."""

    session_id: str
    shell: str
    pid: int | None
    active: bool
    created_at: float
    last_activity: float
    command_count: int


class ShellSession:
    """One shell process bound to a caller-chosen id.

    Environment variables, the working directory and any other shell state
    carry over between ``run`` calls because the same process keeps running.
    Commands are serialized by a lock; completion is detected with a
    per-command marker (see activeshell.terminal.sentinel).

    A session becomes inactive exactly once: on ``close()``, when a command
    times out (the process tree is killed), or when the shell exits on its own.
    It is never restarted; the manager replaces it with a new one instead.
    """

    def __init__(
        self,
        session_id: str,
        shell: ShellSpec,
        process_control: ProcessControl | None = None,
        *,
        cwd: str | None = None,
        config: ShellConfig | None = None,
    ) -> None:
        self._session_id = session_id
        self._shell = shell
        self._control = process_control or get_process_control(shell.platform)
        self._cwd = cwd
        self._config = config or get_config().shell
        self._process: Process | None = None
        self._active = False
        self._closed = False
        self._run_lock = asyncio.Lock()
        self.created_at = time.time()
        self.last_activity = self.created_at
        self.command_count = 0

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def shell(self) -> ShellSpec:
        return self._shell

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    def is_active(self) -> bool:
        """True while the shell is running and the session has not been closed."""
        return (
            self._active
            and self._process is not None
            and self._process.returncode is None
        )

    def info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self._session_id,
            shell=self._shell.path,
            pid=self.pid,
            active=self.is_active(),
            created_at=self.created_at,
            last_activity=self.last_activity,
            command_count=self.command_count,
        )

    async def start(self) -> ShellSession:
        """Spawn the shell process.

        Raises:
            SpawnError: The shell binary or working directory is unusable.
            SessionClosedError: The session was already started or closed.
        """
        if self._process is not None or self._closed:
            raise SessionClosedError(self._session_id)

        env = os.environ.copy()
        env.update(self._config.env)
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._shell.session_args(),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,  # Merge stderr into stdout
                cwd=self._cwd,
                env=env,
                **self._control.spawn_options(),
            )
        except OSError as e:
            raise SpawnError(
                f"Failed to start shell {self._shell.path!r} for session "
                f"{self._session_id!r}: {e}"
            ) from e

        self._active = True
        log.info(
            "Started session %r: %s (pid %d)",
            self._session_id,
            self._shell.path,
            self._process.pid,
        )
        return self

    async def run(
        self,
        command: str,
        timeout_ms: int | None = None,
        working_dir: str | None = None,
    ) -> ExecutionResult:
        """Run ``command`` in this session and wait for it to finish.

        Calls queue behind any command already in flight.

        Args:
            command: Command line in the shell's own syntax.
            timeout_ms: Kill the shell after this many milliseconds. Uses the
                configured default if None.
            working_dir: Change into this directory first. The change
                persists for later commands, like any ``cd``.

        Returns:
            ExecutionResult with status "ok"/"error" when the command finished
            (including the shell exiting, e.g. ``exit 3``), "timeout" when it
            was killed, or "closed" when ``close()`` interrupted it.

        Raises:
            SessionClosedError: The session is not active.
        """
        if timeout_ms is None:
            timeout_ms = self._config.default_timeout_ms

        async with self._run_lock:
            if not self.is_active():
                raise SessionClosedError(self._session_id)
            process = self._process
            assert process is not None and process.stdin is not None

            marker = make_marker()
            scanner = SentinelScanner(marker)
            start_time = time.perf_counter()
            self.last_activity = time.time()
            self.command_count += 1
            log.debug("Session %r running: %s", self._session_id, command)

            payload = wrap_command(self._shell, command, marker, working_dir).encode("utf-8")
            try:
                found = await asyncio.wait_for(
                    self._exchange(process, payload, scanner), timeout=timeout_ms / 1000
                )
            except asyncio.TimeoutError:
                self._active = False
                await self._control.kill_tree(process)
                log.warning(
                    "Session %r: command timed out after %dms, shell killed: %s",
                    self._session_id,
                    timeout_ms,
                    command,
                )
                partial = scanner.drain()
                note = f"Command timed out after {timeout_ms}ms"
                return self._result(
                    command,
                    exit_code=None,
                    output=f"{partial}\n{note}" if partial else note,
                    status="timeout",
                    signal_name=self._control.kill_signal_name,
                    start_time=start_time,
                    timeout_ms=timeout_ms,
                )
            except (BrokenPipeError, ConnectionResetError):
                # Shell went away before it took the command
                found = False
            except asyncio.CancelledError:
                # Shell state is unknown mid-command; it cannot be reused
                self._active = False
                await self._control.kill_tree(process)
                raise

            if found:
                exit_code = scanner.exit_code
                assert exit_code is not None
                log.log(TRACE, "Session %r: exit code %d", self._session_id, exit_code)
                return self._result(
                    command,
                    exit_code=exit_code,
                    output=scanner.output or "",
                    status="ok" if exit_code == 0 else "error",
                    signal_name=None,
                    start_time=start_time,
                    timeout_ms=timeout_ms,
                )

            # EOF without a marker: the shell exited, was closed under us, or
            # detached its output from our pipe (e.g. `exec >/dev/null`)
            output = scanner.drain()
            self._active = False
            remaining = timeout_ms / 1000 - (time.perf_counter() - start_time)
            try:
                returncode = await self._reap_after_eof(
                    process, min(remaining, self._config.close_grace_seconds)
                )
            except asyncio.CancelledError:
                await self._control.kill_tree(process)
                raise
            if self._closed:
                note = f"Session {self._session_id!r} was closed before the command finished"
                return self._result(
                    command,
                    exit_code=None,
                    output=f"{output}\n{note}" if output else note,
                    status="closed",
                    signal_name=None,
                    start_time=start_time,
                    timeout_ms=timeout_ms,
                )

            signal_name = None
            exit_code = returncode
            if returncode < 0:
                # Killed by a signal; report it the way shells do
                with contextlib.suppress(ValueError):
                    signal_name = signal.Signals(-returncode).name
                exit_code = 128 - returncode
            log.info(
                "Session %r: shell exited with code %d", self._session_id, exit_code
            )
            return self._result(
                command,
                exit_code=exit_code,
                output=output,
                status="ok" if exit_code == 0 else "error",
                signal_name=signal_name,
                start_time=start_time,
                timeout_ms=timeout_ms,
            )

    async def close(self) -> None:
        """Terminate the shell. Safe to call any number of times.

        Does not wait for a command in flight; that command resolves with
        status "closed".
        """
        if self._closed:
            return
        self._closed = True
        self._active = False

        process = self._process
        if process is None:
            return

        if process.stdin is not None and not process.stdin.is_closing():
            with contextlib.suppress(OSError):
                process.stdin.close()
        await self._control.terminate_tree(process, self._config.close_grace_seconds)
        log.info("Closed session %r (pid %d)", self._session_id, process.pid)

    async def _reap_after_eof(self, process: Process, limit: float) -> int:
        """Wait up to ``limit`` seconds for the shell to exit, then kill its tree."""
        try:
            return await asyncio.wait_for(process.wait(), timeout=max(limit, _MIN_EOF_WAIT))
        except asyncio.TimeoutError:
            log.warning(
                "Session %r: shell closed its output but kept running, killing it",
                self._session_id,
            )
            await self._control.kill_tree(process)
            assert process.returncode is not None
            return process.returncode

    @staticmethod
    async def _exchange(process: Process, payload: bytes, scanner: SentinelScanner) -> bool:
        """Send the wrapped command, then read until the marker (True) or EOF (False)."""
        assert process.stdin is not None and process.stdout is not None
        process.stdin.write(payload)
        await process.stdin.drain()
        while True:
            chunk = await process.stdout.read(_READ_CHUNK)
            if not chunk:
                return False
            if scanner.feed(chunk):
                return True

    def _result(
        self,
        command: str,
        *,
        exit_code: int | None,
        output: str,
        status: str,
        signal_name: str | None,
        start_time: float,
        timeout_ms: int,
    ) -> ExecutionResult:
        output, truncated = truncate_output(output, self._config.max_output_chars)
        return ExecutionResult(
            command=command,
            exit_code=exit_code,
            output=output,
            truncated=truncated,
            status=status,
            signal=signal_name,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            timeout_ms=timeout_ms,
            session_id=self._session_id,
        )

    def __repr__(self) -> str:
        state = "active" if self.is_active() else "inactive"
        return f"<ShellSession {self._session_id!r} {state}, {self.command_count} commands>"
