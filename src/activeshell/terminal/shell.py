"""Shell selection per platform and environment.

``resolve_shell`` only reads its inputs (plus a ``which`` lookup), so tests
can simulate any platform by passing ``platform``, ``env`` and ``which``.
"""

from __future__ import annotations

import os
import re
import shutil
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Literal

ShellFamily = Literal["posix", "powershell", "cmd"]

SHELL_OVERRIDE_ENV = "ACTIVESHELL_SHELL"
DEFAULT_WINDOWS_SHELL = "powershell.exe"
DEFAULT_POSIX_SHELL = "/bin/sh"

# Shells that understand `$?`, `{ ...; }` groups and printf
POSIX_SHELLS = frozenset({"sh", "bash", "zsh", "dash", "ksh", "mksh", "ash", "busybox"})


def is_windows(platform: str) -> bool:
    """True for native Windows platform strings (cygwin/msys count as POSIX)."""
    return platform.startswith("win")


def shell_basename(path: str) -> str:
    """Lowercased executable name without directory or .exe suffix."""
    name = re.split(r"[\\/]", path)[-1].lower()
    return name[:-4] if name.endswith(".exe") else name


def family_for(path: str) -> ShellFamily:
    name = shell_basename(path)
    if name in {"pwsh", "powershell"}:
        return "powershell"
    if name == "cmd":
        return "cmd"
    return "posix"


@dataclass(frozen=True)
class ShellSpec:
    """A resolved shell binary and how to drive it."""

    path: str
    family: ShellFamily
    platform: str

    @property
    def name(self) -> str:
        return shell_basename(self.path)

    def session_args(self) -> list[str]:
        """argv for a long-lived shell that reads commands from stdin."""
        if self.family == "powershell":
            return [self.path, *self._powershell_flags(), "-Command", "-"]
        if self.family == "cmd":
            return [self.path, "/Q", "/D"]
        if self.name == "bash":
            return [self.path, "--noprofile", "--norc"]
        if self.name == "zsh":
            return [self.path, "-f"]
        return [self.path]

    def one_shot_args(self, command: str) -> list[str]:
        """argv that runs ``command`` once and exits with its status."""
        if self.family == "powershell":
            return [self.path, *self._powershell_flags(), "-Command", command]
        if self.family == "cmd":
            # /d skips AutoRun, /s keeps the quoting of the command intact
            return [self.path, "/d", "/s", "/c", command]
        return [self.path, "-c", command]

    def _powershell_flags(self) -> list[str]:
        flags = ["-NoLogo", "-NoProfile", "-NonInteractive"]
        if is_windows(self.platform):
            flags += ["-ExecutionPolicy", "Bypass"]
        return flags


def resolve_shell(
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> ShellSpec:
    """Decide which shell to spawn.

    Order:
    1. ``ACTIVESHELL_SHELL`` on any platform, if ``which`` can locate it.
    2. Windows: ``powershell.exe``. ``ComSpec`` is not consulted.
    3. POSIX: ``$SHELL`` if it is a Bourne-compatible shell that ``which``
       can locate, else ``/bin/sh``.

    Args:
        platform: ``sys.platform``-style string. Defaults to the host.
        env: Environment mapping. Defaults to ``os.environ``.
        which: Executable lookup, ``shutil.which`` by default.
    """
    platform = platform or sys.platform
    env = os.environ if env is None else env

    override = env.get(SHELL_OVERRIDE_ENV)
    if override:
        located = which(override)
        if located:
            return ShellSpec(located, family_for(located), platform)

    if is_windows(platform):
        # ComSpec (usually cmd.exe) never applies here, only ACTIVESHELL_SHELL
        return ShellSpec(DEFAULT_WINDOWS_SHELL, "powershell", platform)

    login_shell = env.get("SHELL")
    if login_shell and shell_basename(login_shell) in POSIX_SHELLS:
        located = which(login_shell)
        if located:
            return ShellSpec(located, "posix", platform)

    return ShellSpec(DEFAULT_POSIX_SHELL, "posix", platform)
