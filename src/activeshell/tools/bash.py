"""The bash tool: validate arguments, route, and format results.

This is the only entry point the tool registry calls. Every failure mode is
turned into a ToolResult here; nothing but cancellation escapes ``handle``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from activeshell.config import ShellConfig, get_config
from activeshell.errors import CommandValidationError, ShellToolError
from activeshell.logging import get_logger, setup_logging
from activeshell.session.session_manager import ShellSessionManager, default_manager
from activeshell.terminal.executor import CommandExecutor
from activeshell.terminal.result import ExecutionResult
from activeshell.tools.types import ToolContext, ToolDefinition, ToolResult

log = get_logger("tools.bash")

TOOL_NAME = "activeshell_bash"

TOOL_DESCRIPTION = (
    "Execute bash commands (PowerShell on Windows) on the local machine. "
    "Commands run in a fresh process by default; set persistent=true to run "
    "inside a long-lived shell session that keeps environment variables and "
    "the working directory between calls. Output includes the exit code."
)

PARAMETERS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "command": {
            "type": "string",
            "description": "The command to execute.",
        },
        "timeout": {
            "type": "integer",
            "description": "Timeout in milliseconds. The command is killed when it expires.",
            "minimum": 1,
        },
        "workingDir": {
            "type": "string",
            "description": "Directory to run the command in.",
        },
        "persistent": {
            "type": "boolean",
            "description": "Run inside a persistent shell session.",
            "default": False,
        },
        "sessionId": {
            "type": "string",
            "description": "Persistent session to use. Defaults to the caller's session.",
        },
    },
    "required": ["command"],
}


class CommandRequest(BaseModel):
    """Validated tool arguments."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    command: StrictStr
    timeout: int | None = Field(default=None, gt=0)
    working_dir: str | None = Field(default=None, alias="workingDir")
    persistent: bool = False
    session_id: str | None = Field(default=None, alias="sessionId")


def _validation_error(error: Mapping[str, Any]) -> CommandValidationError:
    loc = error.get("loc") or ()
    field = str(loc[0]) if loc else "arguments"
    kind = error.get("type", "")
    if field == "command":
        if kind == "missing" or error.get("input") is None:
            return CommandValidationError("command", "Command is required")
        return CommandValidationError("command", "Command must be a string")
    return CommandValidationError(field, f"Invalid {field}: {error.get('msg', kind)}")


def parse_request(raw_args: Any) -> CommandRequest:
    """Validate a raw argument bag.

    Raises:
        CommandValidationError: Naming the first offending field.
    """
    if not isinstance(raw_args, Mapping):
        raise CommandValidationError("arguments", "Arguments must be an object")
    try:
        request = CommandRequest.model_validate(dict(raw_args))
    except ValidationError as e:
        raise _validation_error(e.errors()[0]) from None
    if not request.command.strip():
        raise CommandValidationError("command", "Command is required")
    return request


def format_result(result: ExecutionResult) -> ToolResult:
    """Render an ExecutionResult as tool text.

    Completed commands end with an ``Exit Code: <n>`` line; timeouts and
    interrupted sessions say so explicitly.
    """
    body = result.output.rstrip()
    if result.timed_out:
        message = (
            f"Error: command exceeded timeout of {result.timeout_ms}ms "
            "and was terminated"
        )
        return ToolResult(content=f"{body}\n\n{message}" if body else message, is_error=True)
    if result.status == "closed":
        message = "Error: session closed before the command finished"
        return ToolResult(content=f"{body}\n\n{message}" if body else message, is_error=True)

    footer = f"Exit Code: {result.exit_code}"
    content = f"{body}\n\n{footer}" if body else footer
    return ToolResult(content=content, is_error=result.exit_code != 0)


class BashTool:
    """Routes validated commands to one-off execution or a persistent session."""

    def __init__(
        self,
        manager: ShellSessionManager | None = None,
        executor: CommandExecutor | None = None,
        config: ShellConfig | None = None,
    ) -> None:
        self._config = config or get_config().shell
        self._manager = manager
        self._executor = executor

    @property
    def manager(self) -> ShellSessionManager:
        """The session registry; the process-wide one unless given explicitly."""
        if self._manager is not None:
            return self._manager
        return default_manager()

    @property
    def executor(self) -> CommandExecutor:
        # Created lazily so constructing the tool never touches the host shell
        if self._executor is None:
            self._executor = CommandExecutor(config=self._config)
        return self._executor

    def resolve_session_id(
        self, request: CommandRequest, context: ToolContext | None
    ) -> str:
        if request.session_id:
            return request.session_id
        if context is not None and context.session_id:
            return context.session_id
        return self._config.default_session_id

    async def handle(
        self, raw_args: Any, context: ToolContext | None = None
    ) -> ToolResult:
        """Run one tool invocation and return its formatted result."""
        try:
            request = parse_request(raw_args)
        except CommandValidationError as e:
            log.debug("Rejected bash tool call: %s", e.message)
            return ToolResult(content=f"Error: {e.message}", is_error=True)

        timeout_ms = request.timeout or self._config.default_timeout_ms
        try:
            if request.persistent:
                session_id = self.resolve_session_id(request, context)
                session = await self.manager.get_session(session_id)
                result = await session.run(
                    request.command, timeout_ms, working_dir=request.working_dir
                )
            else:
                result = await self.executor.execute(
                    request.command,
                    timeout_ms=timeout_ms,
                    working_dir=request.working_dir,
                )
        except ShellToolError as e:
            log.error("Bash tool failed for %r: %s", request.command, e)
            return ToolResult(content=f"Error: {e}", is_error=True)
        except Exception as e:
            log.exception("Unexpected error in bash tool for %r", request.command)
            return ToolResult(content=f"Error: {e}", is_error=True)

        return format_result(result)


_default_tool: BashTool | None = None


def get_default_bash_tool() -> BashTool:
    """The BashTool bound to the process-wide session manager."""
    global _default_tool
    if _default_tool is None:
        setup_logging(get_config().logging)
        _default_tool = BashTool()
    return _default_tool


async def _handle(raw_args: dict[str, Any], context: ToolContext | None = None) -> ToolResult:
    return await get_default_bash_tool().handle(raw_args, context)


bash_tool = ToolDefinition(
    name=TOOL_NAME,
    description=TOOL_DESCRIPTION,
    category="system",
    parameters=PARAMETERS_SCHEMA,
    handler=_handle,
    internal=True,
    agent_accessible=True,
)
