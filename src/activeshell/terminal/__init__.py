"""Process-level building blocks: shell selection, tree control, execution.

One-off commands go through CommandExecutor; persistent sessions (see
activeshell.session) reuse ShellSpec, ProcessControl and the sentinel
protocol from here.
"""

from activeshell.terminal.executor import CommandExecutor
from activeshell.terminal.process import (
    PosixProcessControl,
    ProcessControl,
    WindowsProcessControl,
    get_process_control,
)
from activeshell.terminal.result import ExecutionResult
from activeshell.terminal.sentinel import SentinelScanner, make_marker, wrap_command
from activeshell.terminal.shell import ShellSpec, resolve_shell

__all__ = [
    "CommandExecutor",
    "ExecutionResult",
    "PosixProcessControl",
    "ProcessControl",
    "SentinelScanner",
    "ShellSpec",
    "WindowsProcessControl",
    "get_process_control",
    "make_marker",
    "resolve_shell",
    "wrap_command",
]
