"""Tool definitions exposed to an external tool registry."""

from activeshell.tools.bash import (
    TOOL_NAME,
    BashTool,
    CommandRequest,
    bash_tool,
    format_result,
    get_default_bash_tool,
    parse_request,
)
from activeshell.tools.types import ToolContext, ToolDefinition, ToolResult


def get_all_tool_definitions() -> dict[str, ToolDefinition]:
    """Every tool this package provides, keyed by name."""
    return {bash_tool.name: bash_tool}


__all__ = [
    "TOOL_NAME",
    "BashTool",
    "CommandRequest",
    "ToolContext",
    "ToolDefinition",
    "ToolResult",
    "bash_tool",
    "format_result",
    "get_all_tool_definitions",
    "get_default_bash_tool",
    "parse_request",
]
