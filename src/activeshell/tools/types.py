"""Types shared with the tool registry that dispatches to our handlers."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolContext:
    """Ambient information about the caller of a tool."""

    tool_name: str = ""
    session_id: str | None = None  # Caller's conversation/session id
    user_id: str | None = None
    start_time: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """What a tool returns across the registry boundary."""

    content: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "isError": self.is_error}

    def __repr__(self) -> str:
        if self.is_error:
            return f"ToolResult(error={self.content[:60]!r})"
        return f"ToolResult(content={self.content[:60]!r})"


ToolHandler = Callable[[dict[str, Any], ToolContext | None], Awaitable[ToolResult]]


@dataclass
class ToolDefinition:
    """Declaration of a tool: identity, JSON-schema parameters and handler."""

    name: str
    description: str
    category: str
    parameters: dict[str, Any]
    handler: ToolHandler
    internal: bool = False  # Only reachable through internal/agent paths
    agent_accessible: bool = True
