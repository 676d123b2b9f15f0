"""Completion markers for commands sent to a long-lived shell.

A persistent shell never exits between commands, so the end of a command's
output has to be signalled in-band. After each command the shell is told to
print a blank line followed by ``<marker><exit status>``; the reader buffers
output until that line shows up. Markers embed a fresh uuid4 per command, so
ordinary output cannot produce one by accident.
"""

from __future__ import annotations

import codecs
import re
import shlex
import uuid

from activeshell.terminal.shell import ShellSpec

MARKER_PREFIX = "__ACTIVESHELL_"


def make_marker() -> str:
    """A marker token unique to one command."""
    return f"{MARKER_PREFIX}{uuid.uuid4().hex}__"


def change_directory(shell: ShellSpec, path: str) -> str:
    """A command that changes the shell's working directory to ``path``."""
    if shell.family == "powershell":
        return "Set-Location -LiteralPath '{}'".format(path.replace("'", "''"))
    if shell.family == "cmd":
        return f'cd /d "{path}"'
    return f"cd -- {shlex.quote(path)}"


def wrap_command(
    shell: ShellSpec, command: str, marker: str, working_dir: str | None = None
) -> str:
    """Text to write to the shell's stdin for ``command``.

    posix: the command runs inside a ``{ }`` group (same shell, so exports and
    ``cd`` persist) with stdin from /dev/null so it cannot read the marker
    line out of our pipe. If ``working_dir`` is given the shell changes into
    it first and skips the command when that fails.
    """
    if shell.family == "powershell":
        prelude = ""
        if working_dir:
            prelude = change_directory(shell, working_dir) + " -ErrorAction Stop\n"
        return (
            "$global:LASTEXITCODE = $null\n"
            f"{prelude}{command}\n"
            "$__asOk = $?; "
            "$__asCode = if ($null -ne $LASTEXITCODE) { $LASTEXITCODE } "
            "elseif ($__asOk) { 0 } else { 1 }; "
            f'[Console]::Out.Write("`n{marker}$__asCode`n"); '
            "[Console]::Out.Flush()\n"
        )
    if shell.family == "cmd":
        if working_dir:
            command = f"{change_directory(shell, working_dir)} && {command}"
        return f"{command}\r\necho.\r\necho {marker}%ERRORLEVEL%\r\n"

    body = command if command.strip() else ":"
    if working_dir:
        body = f"{change_directory(shell, working_dir)} &&\n{{\n{body}\n}}"
    return (
        "{\n"
        f"{body}\n"
        "} </dev/null\n"
        "__activeshell_ec=$?\n"
        f"printf '\\n{marker}%d\\n' \"$__activeshell_ec\"\n"
    )


class SentinelScanner:
    """Incrementally scan shell output for a completion marker.

    Example:
        scanner = SentinelScanner(marker)
        while not scanner.feed(await stdout.read(4096)):
            ...
        scanner.output, scanner.exit_code
    """

    def __init__(self, marker: str) -> None:
        self.marker = marker
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pattern = re.compile(r"(?:\r?\n)?" + re.escape(marker) + r"(-?\d+)\r?\n")
        # Marker plus the longest plausible exit status and line ending
        self._overlap = len(marker) + 24
        self._buffer = ""
        self._scanned = 0
        self.output: str | None = None
        self.exit_code: int | None = None

    @property
    def done(self) -> bool:
        return self.exit_code is not None

    def feed(self, data: bytes) -> bool:
        """Add raw bytes; return True once the marker has been seen."""
        if self.done:
            return True
        self._buffer += self._decoder.decode(data)
        match = self._pattern.search(self._buffer, max(0, self._scanned - self._overlap))
        if match is None:
            self._scanned = len(self._buffer)
            return False
        self.output = self._buffer[: match.start()]
        self.exit_code = int(match.group(1))
        return True

    def drain(self) -> str:
        """Everything buffered so far, for when the stream ends without a marker."""
        self._buffer += self._decoder.decode(b"", final=True)
        return self._buffer
