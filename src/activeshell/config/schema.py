"""Configuration schema dataclasses for activeshell.

All fields have defaults so partial YAML files merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ShellConfig:
    """Execution defaults for one-off commands and persistent sessions.

    Example config.yaml:
        shell:
          default_timeout_ms: 60000
          max_output_chars: 20000
          close_grace_seconds: 1.5
          env:
            PAGER: cat
    """

    default_timeout_ms: int = 30_000
    max_output_chars: int = 50_000
    close_grace_seconds: float = 2.0  # SIGTERM -> SIGKILL window on close
    default_session_id: str = "default"
    env: dict[str, str] = field(default_factory=dict)  # Extra env for spawned shells


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # TRACE, DEBUG, INFO, WARNING, ERROR
    file: str | None = None


@dataclass
class Config:
    """Root configuration object."""

    shell: ShellConfig = field(default_factory=ShellConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
