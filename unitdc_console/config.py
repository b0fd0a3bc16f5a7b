"""Console configuration and logging setup.

Settings come from UNITDC_* environment variables with defaults; CLI options
override them. Self-contained apart from rich's log handler.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from unitdc_console.engine import DEFAULT_ENGINE

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ConsoleConfig:
    """Resolved console settings."""

    engine: str = DEFAULT_ENGINE
    log_level: str = "WARNING"
    show_hints: bool = True

    @classmethod
    def from_env(cls, env: Optional[dict[str, str]] = None) -> ConsoleConfig:
        """Read UNITDC_ENGINE, UNITDC_LOG_LEVEL and UNITDC_HINTS."""
        env = os.environ if env is None else env
        return cls(
            engine=env.get("UNITDC_ENGINE", DEFAULT_ENGINE),
            log_level=normalize_log_level(env.get("UNITDC_LOG_LEVEL", "WARNING")),
            show_hints=env.get("UNITDC_HINTS", "1").strip().lower() in _TRUTHY,
        )

    def override(self, engine: Optional[str] = None, log_level: Optional[str] = None) -> ConsoleConfig:
        """Apply CLI options on top of the environment settings."""
        cfg = self
        if engine:
            cfg = replace(cfg, engine=engine)
        if log_level:
            cfg = replace(cfg, log_level=normalize_log_level(log_level))
        return cfg


def normalize_log_level(level: str) -> str:
    """Upper-case a level name, rejecting unknown ones."""
    name = level.strip().upper()
    if name not in _LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Choose: {', '.join(_LOG_LEVELS)}")
    return name


def configure_logging(level: str, console: Optional[Console] = None) -> None:
    """Route the package's loggers through a RichHandler on stderr."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    root = logging.getLogger("unitdc_console")
    root.handlers[:] = [handler]
    root.setLevel(normalize_log_level(level))
