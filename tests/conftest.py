"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from activeshell.config import ShellConfig, reset_config
from activeshell.session import ShellSessionManager, default_manager, reset_default_manager

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep the developer's own config files and env out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    monkeypatch.delenv("ACTIVESHELL_LOG", raising=False)
    monkeypatch.delenv("ACTIVESHELL_LOG_LEVEL", raising=False)
    monkeypatch.delenv("ACTIVESHELL_TIMEOUT_MS", raising=False)
    monkeypatch.delenv("ACTIVESHELL_SHELL", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def shell_config() -> ShellConfig:
    """Short grace period so closes stay fast."""
    return ShellConfig(default_timeout_ms=10_000, close_grace_seconds=0.5)


@pytest.fixture
async def manager(shell_config):
    """An isolated session manager, closed after the test."""
    mgr = ShellSessionManager(config=shell_config)
    yield mgr
    await mgr.close_all_sessions()


@pytest.fixture
async def shared_manager():
    """The process-wide manager, emptied and forgotten after the test."""
    mgr = default_manager()
    yield mgr
    await mgr.close_all_sessions()
    reset_default_manager()
