"""Tests for the session registry.

Tests coverage for:
- src/activeshell/session/session_manager.py
"""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

import pytest

from activeshell.errors import SpawnError
from activeshell.session.session_manager import (
    ShellSessionManager,
    default_manager,
    reset_default_manager,
)
from activeshell.session.shell_session import ShellSession
from activeshell.terminal.shell import ShellSpec, resolve_shell
from tests.utils import cmd


# =============================================================================
# Session Lifecycle Tests
# =============================================================================


class TestSessionLifecycle:
    """Tests for session creation, reuse, and closing."""

    @pytest.mark.asyncio
    async def test_get_session_starts_shell(self, manager):
        """Test that the first get_session spawns an active session."""
        session = await manager.get_session("a")
        assert isinstance(session, ShellSession)
        assert session.session_id == "a"
        assert session.is_active()
        assert manager.has_session("a")
        assert len(manager) == 1

    @pytest.mark.asyncio
    async def test_get_session_reuses_active(self, manager):
        """Test that repeated lookups return the same object."""
        first = await manager.get_session("a")
        second = await manager.get_session("a")
        assert first is second
        assert len(manager) == 1

    @pytest.mark.asyncio
    async def test_distinct_ids_get_distinct_processes(self, manager):
        """Test that different ids never share a shell."""
        a = await manager.get_session("a")
        b = await manager.get_session("b")
        assert a is not b
        assert a.pid != b.pid

    @pytest.mark.asyncio
    async def test_close_session(self, manager):
        """Test that close_session closes and forgets the session."""
        session = await manager.get_session("a")
        await manager.close_session("a")
        assert not session.is_active()
        assert not manager.has_session("a")
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_close_unknown_session_is_noop(self, manager):
        """Test closing an id that was never created."""
        await manager.close_session("never-created")
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_close_all_sessions(self, manager):
        """Test that close_all_sessions closes every session."""
        sessions = [await manager.get_session(sid) for sid in ("a", "b", "c")]
        await manager.close_all_sessions()
        assert all(not s.is_active() for s in sessions)
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_close_all_on_empty_manager(self, manager):
        """Test close_all_sessions with nothing to close."""
        await manager.close_all_sessions()
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_get_after_close_creates_new(self, manager):
        """Test that a closed id gets a fresh shell on next access."""
        first = await manager.get_session("a")
        await manager.close_session("a")
        second = await manager.get_session("a")
        assert second is not first
        assert second.is_active()

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_all(self, shell_config):
        """Test that leaving the async with block closes sessions."""
        async with ShellSessionManager(config=shell_config) as mgr:
            session = await mgr.get_session("ctx")
            assert session.is_active()
        assert not session.is_active()
        assert len(mgr) == 0


# =============================================================================
# Replacement and Concurrency Tests
# =============================================================================


class TestSessionReplacement:
    """Tests for healing the registry after a session dies."""

    @pytest.mark.asyncio
    async def test_timed_out_session_is_replaced(self, manager):
        """Test that a session killed by a timeout is swapped for a new one."""
        session = await manager.get_session("a")
        result = await session.run(cmd("sleep 10", "Start-Sleep 10"), timeout_ms=300)
        assert result.timed_out
        assert not manager.has_session("a")

        replacement = await manager.get_session("a")
        assert replacement is not session
        assert replacement.is_active()
        assert len(manager) == 1

    @pytest.mark.asyncio
    async def test_state_does_not_survive_replacement(self, manager):
        """Test that a replacement shell starts from a clean environment."""
        session = await manager.get_session("a")
        await session.run(cmd("export KEPT=yes", "$env:KEPT = 'yes'"))
        await session.close()

        fresh = await manager.get_session("a")
        result = await fresh.run(cmd('echo "[$KEPT]"', 'Write-Output "[$env:KEPT]"'))
        assert "[]" in result.output

    @pytest.mark.asyncio
    async def test_concurrent_first_access_spawns_once(self, shell_config):
        """Test that racing get_session calls for one id share one shell."""
        resolver = Mock(side_effect=resolve_shell)
        async with ShellSessionManager(resolver=resolver, config=shell_config) as mgr:
            sessions = await asyncio.gather(*(mgr.get_session("race") for _ in range(10)))
            assert all(s is sessions[0] for s in sessions)
            assert resolver.call_count == 1
            assert len(mgr) == 1

    @pytest.mark.asyncio
    async def test_distinct_ids_do_not_wait_on_each_other(self, shell_config):
        """Test that concurrent creation for different ids yields one shell each."""
        resolver = Mock(side_effect=resolve_shell)
        async with ShellSessionManager(resolver=resolver, config=shell_config) as mgr:
            sessions = await asyncio.gather(*(mgr.get_session(f"id{i}") for i in range(4)))
            assert len({s.pid for s in sessions}) == 4
            assert resolver.call_count == 4

    @pytest.mark.asyncio
    async def test_spawn_failure_leaves_nothing_stored(self, shell_config, tmp_path):
        """Test that a shell that cannot start is not registered."""

        def broken_resolver():
            return ShellSpec(str(tmp_path / "missing-shell"), "posix", "linux")

        mgr = ShellSessionManager(resolver=broken_resolver, config=shell_config)
        with pytest.raises(SpawnError):
            await mgr.get_session("a")
        assert not mgr.has_session("a")
        assert len(mgr) == 0


# =============================================================================
# Introspection Tests
# =============================================================================


class TestIntrospection:
    """Tests for list_sessions and has_session."""

    @pytest.mark.asyncio
    async def test_list_sessions(self, manager):
        """Test that list_sessions reports every tracked session."""
        await manager.get_session("a")
        session_b = await manager.get_session("b")
        await session_b.run("echo hi")

        infos = {info.session_id: info for info in manager.list_sessions()}
        assert set(infos) == {"a", "b"}
        assert infos["b"].command_count == 1
        assert infos["a"].command_count == 0
        assert all(info.active for info in infos.values())
        assert infos["a"].shell == resolve_shell().path

    @pytest.mark.asyncio
    async def test_has_session_false_for_unknown(self, manager):
        """Test has_session for an id never used."""
        assert not manager.has_session("ghost")

    @pytest.mark.asyncio
    async def test_default_cwd_applies_to_new_sessions(self, shell_config, tmp_path):
        """Test that new shells start in the manager's default_cwd."""
        async with ShellSessionManager(config=shell_config, default_cwd=str(tmp_path)) as mgr:
            session = await mgr.get_session("a")
            result = await session.run(cmd("pwd", "(Get-Location).Path"))
        assert result.output.strip().endswith(tmp_path.name)


class TestDefaultManager:
    """Tests for the process-wide manager."""

    def test_default_manager_is_shared(self):
        try:
            assert default_manager() is default_manager()
        finally:
            reset_default_manager()

    def test_reset_default_manager(self):
        first = default_manager()
        reset_default_manager()
        try:
            assert default_manager() is not first
        finally:
            reset_default_manager()
