"""Shared test helpers for activeshell tests."""

from __future__ import annotations

import asyncio
import sys

import psutil
import pytest

IS_WINDOWS = sys.platform == "win32"

posix_only = pytest.mark.skipif(IS_WINDOWS, reason="relies on POSIX shell semantics")


def cmd(posix: str, windows: str) -> str:
    """Pick the command variant for the host shell."""
    return windows if IS_WINDOWS else posix


async def wait_gone(pid: int, timeout: float = 3.0) -> bool:
    """True once ``pid`` no longer exists or is a zombie awaiting its new parent."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return True
        except psutil.NoSuchProcess:
            return True
        await asyncio.sleep(0.05)
    return False
