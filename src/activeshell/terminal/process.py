"""Platform-specific process spawning and process-tree termination.

Shells run user commands that may fork their own children, so killing only
the top-level handle leaves orphans behind. Both implementations below
terminate the whole tree:

- PosixProcessControl: the shell leads its own session/process group and the
  group is signalled with killpg while the shell is still unreaped.
- WindowsProcessControl: there are no process groups to signal, so the tree
  is enumerated with psutil and every member is terminated.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import subprocess
from typing import TYPE_CHECKING, Any, Protocol

import psutil

from activeshell.logging import get_logger
from activeshell.terminal.shell import is_windows

if TYPE_CHECKING:
    from asyncio.subprocess import Process

log = get_logger("process")


class ProcessControl(Protocol):
    """Spawn flags and tree termination for one platform family."""

    kill_signal_name: str

    def spawn_options(self) -> dict[str, Any]:
        """Extra keyword arguments for ``asyncio.create_subprocess_exec``."""
        ...

    async def kill_tree(self, process: Process) -> None:
        """Forcibly kill the process and all descendants, then reap it."""
        ...

    async def terminate_tree(self, process: Process, grace: float) -> None:
        """Ask the tree to exit, force-kill whatever is left after ``grace`` seconds."""
        ...


class PosixProcessControl:
    """Process-group based control for Linux, macOS and other Unixes."""

    kill_signal_name = "SIGKILL"

    def spawn_options(self) -> dict[str, Any]:
        # New session => pgid == pid, and the group outlives the shell itself
        return {"start_new_session": True}

    def _signal_group(self, process: Process, sig: signal.Signals) -> None:
        try:
            os.killpg(process.pid, sig)
        except ProcessLookupError:
            pass
        except PermissionError:
            log.debug("killpg(%d, %s) not permitted, signalling pid only", process.pid, sig.name)
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.send_signal(sig)

    async def kill_tree(self, process: Process) -> None:
        if process.returncode is None:
            self._signal_group(process, signal.SIGKILL)
        await process.wait()

    async def terminate_tree(self, process: Process, grace: float) -> None:
        if process.returncode is not None:
            # Leader already reaped; its pgid may now belong to another group
            return
        descendants = (await asyncio.to_thread(_collect_tree, process.pid))[:-1]
        self._signal_group(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=grace)
        except asyncio.TimeoutError:
            log.debug("pid %d ignored SIGTERM for %.1fs, killing", process.pid, grace)
        if process.returncode is None:
            self._signal_group(process, signal.SIGKILL)
        else:
            # Leader reaped, so only kill children we saw before SIGTERM
            _kill_all(descendants)
        await process.wait()


def _collect_tree(pid: int) -> list[psutil.Process]:
    """Descendants of ``pid`` followed by the process itself."""
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return []
    try:
        children = parent.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        children = []
    return [*children, parent]


def _kill_all(procs: list[psutil.Process]) -> None:
    # psutil refuses to signal a pid that has been reused
    for proc in procs:
        with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
            proc.kill()


class WindowsProcessControl:
    """psutil-based tree control for Windows."""

    kill_signal_name = "TerminateProcess"

    def spawn_options(self) -> dict[str, Any]:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}

    async def _tree(self, process: Process) -> list[psutil.Process]:
        if process.returncode is not None:
            # The pid may already belong to someone else
            return []
        return await asyncio.to_thread(_collect_tree, process.pid)

    async def kill_tree(self, process: Process) -> None:
        _kill_all(await self._tree(process))
        await process.wait()

    async def terminate_tree(self, process: Process, grace: float) -> None:
        tree = await self._tree(process)
        for proc in tree:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                proc.terminate()
        _, alive = await asyncio.to_thread(psutil.wait_procs, tree, timeout=grace)
        _kill_all(alive)
        await process.wait()


def get_process_control(platform: str) -> ProcessControl:
    """Pick the implementation matching a resolved platform string."""
    if is_windows(platform):
        return WindowsProcessControl()
    return PosixProcessControl()
