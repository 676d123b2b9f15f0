"""Persistent shell sessions and the registry that owns them."""

from activeshell.session.session_manager import (
    ShellSessionManager,
    default_manager,
    reset_default_manager,
)
from activeshell.session.shell_session import SessionInfo, ShellSession

__all__ = [
    "SessionInfo",
    "ShellSession",
    "ShellSessionManager",
    "default_manager",
    "reset_default_manager",
]
