"""
Structured logging for e2ekit.

Extends Python's standard logging with a TRACE level, ``extra`` fields
rendered as ``[key:value]`` columns, and a root/derived logger hierarchy
where derived loggers share the root's handlers.

Example:
    lg = create_root_lg("debug")
    env_lg = LoggerFactory.derive(lg, "env")
    env_lg.info("feature passed", extra={"feature": "net", "after": 0.12})
"""

import logging
from typing import IO

from .config import LogConfig, resolve_level
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogError
from .factory import LoggerFactory
from .formatters import LogFormatter
from .logger import Logger

logging.TRACE = LogConstants.CUSTOM_LEVELS["TRACE"]  # type: ignore[attr-defined]
logging.addLevelName(logging.TRACE, "TRACE")  # type: ignore[attr-defined]


def create_root_lg(
    level: str | int | bool = "info",
    colors: bool = False,
    micros: bool = False,
    stream: IO[str] | None = None,
) -> Logger:
    """Create a root ``/e2e`` logger from individual parameters."""
    config = LogConfig.from_params(level, micros=micros, colors=colors)
    return LoggerFactory.create_root(config, stream=stream)


__all__ = [
    "InvalidLogLevelError",
    "LogConfig",
    "LogConstants",
    "LogError",
    "LogFormatter",
    "Logger",
    "LoggerFactory",
    "create_root_lg",
    "resolve_level",
]
