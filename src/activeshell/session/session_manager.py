"""Registry of persistent shell sessions keyed by caller-chosen ids."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import TracebackType

from activeshell.config import ShellConfig, get_config
from activeshell.logging import get_logger
from activeshell.session.shell_session import SessionInfo, ShellSession
from activeshell.terminal.process import ProcessControl, get_process_control
from activeshell.terminal.shell import ShellSpec, resolve_shell

log = get_logger("session")


class ShellSessionManager:
    """Owns every ShellSession and guarantees one live process per id.

    Creation and closing for an id happen under that id's lock, so concurrent
    first access spawns a single shell. Different ids never wait on each other.

    Responsibilities:
    - Get-or-create sessions, replacing inactive ones transparently
    - Close one session or all of them
    - Report what is running
    """

    def __init__(
        self,
        resolver: Callable[[], ShellSpec] = resolve_shell,
        process_control: ProcessControl | None = None,
        *,
        config: ShellConfig | None = None,
        default_cwd: str | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            resolver: Returns the shell to spawn for new sessions.
            process_control: Tree-kill strategy. Chosen per resolved platform if None.
            config: Execution defaults. Uses the global config if None.
            default_cwd: Starting directory for new shells (process cwd if None).
        """
        self._resolver = resolver
        self._process_control = process_control
        self._config = config
        self._default_cwd = default_cwd
        self._sessions: dict[str, ShellSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    async def get_session(self, session_id: str) -> ShellSession:
        """Return the active session for ``session_id``, starting one if needed.

        Raises:
            SpawnError: A new shell had to be started and could not be.
        """
        session = self._sessions.get(session_id)
        if session is not None and session.is_active():
            return session

        async with self._lock_for(session_id):
            # Another caller may have created it while we waited
            session = self._sessions.get(session_id)
            if session is not None:
                if session.is_active():
                    return session
                log.info("Replacing inactive session %r", session_id)
                del self._sessions[session_id]
                await session.close()

            config = self._config or get_config().shell
            shell = self._resolver()
            control = self._process_control or get_process_control(shell.platform)
            session = ShellSession(
                session_id, shell, control, cwd=self._default_cwd, config=config
            )
            await session.start()
            self._sessions[session_id] = session
            return session

    async def close_session(self, session_id: str) -> None:
        """Close and forget ``session_id``. Unknown ids are ignored."""
        async with self._lock_for(session_id):
            session = self._sessions.pop(session_id, None)
            if session is not None:
                await session.close()

    async def close_all_sessions(self) -> None:
        """Close every tracked session concurrently."""
        session_ids = list(self._sessions)
        if not session_ids:
            return
        results = await asyncio.gather(
            *(self.close_session(sid) for sid in session_ids),
            return_exceptions=True,
        )
        for sid, outcome in zip(session_ids, results):
            if isinstance(outcome, BaseException):
                log.error("Error closing session %r: %s", sid, outcome)
        log.info("Closed %d session(s)", len(session_ids))

    def has_session(self, session_id: str) -> bool:
        """True if ``session_id`` maps to an active session."""
        session = self._sessions.get(session_id)
        return session is not None and session.is_active()

    def list_sessions(self) -> list[SessionInfo]:
        return [session.info() for session in self._sessions.values()]

    def __len__(self) -> int:
        return len(self._sessions)

    async def __aenter__(self) -> ShellSessionManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close_all_sessions()


_default_manager: ShellSessionManager | None = None


def default_manager() -> ShellSessionManager:
    """The process-wide manager used by the default tool handler.

    Created on first call. Code that needs isolation should construct its own
    ShellSessionManager instead.
    """
    global _default_manager
    if _default_manager is None:
        _default_manager = ShellSessionManager()
    return _default_manager


def reset_default_manager() -> None:
    """Forget the process-wide manager (its sessions are not closed)."""
    global _default_manager
    _default_manager = None
