"""activeshell: one-off and persistent shell execution for agent tools."""

__version__ = "0.1.0"

# Public API
from activeshell.config import Config, ShellConfig, get_config, load_config
from activeshell.errors import (
    CommandExecutionError,
    CommandTimeoutError,
    CommandValidationError,
    SessionClosedError,
    ShellToolError,
    SpawnError,
)
from activeshell.session import (
    SessionInfo,
    ShellSession,
    ShellSessionManager,
    default_manager,
)
from activeshell.terminal import (
    CommandExecutor,
    ExecutionResult,
    ShellSpec,
    resolve_shell,
)
from activeshell.tools import (
    BashTool,
    ToolContext,
    ToolDefinition,
    ToolResult,
    bash_tool,
    get_all_tool_definitions,
)

__all__ = [
    # Tool boundary
    "BashTool",
    "ToolContext",
    "ToolDefinition",
    "ToolResult",
    "bash_tool",
    "get_all_tool_definitions",
    # Sessions
    "SessionInfo",
    "ShellSession",
    "ShellSessionManager",
    "default_manager",
    # Execution
    "CommandExecutor",
    "ExecutionResult",
    "ShellSpec",
    "resolve_shell",
    # Config
    "Config",
    "ShellConfig",
    "get_config",
    "load_config",
    # Errors
    "CommandExecutionError",
    "CommandTimeoutError",
    "CommandValidationError",
    "SessionClosedError",
    "ShellToolError",
    "SpawnError",
]
