"""
Immutable logger configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .constants import LogConstants
from .exceptions import InvalidLogLevelError


def resolve_level(level: str | int | bool) -> int | bool:
    """
    Resolve a log level from a name, number or boolean.

    ``False`` (or ``"false"``) disables logging, ``True`` means ``info``.

    Raises:
        InvalidLogLevelError: If the level name is unknown
    """
    if isinstance(level, bool):
        return logging.INFO if level else False
    if isinstance(level, int):
        return level
    if level.isnumeric():
        return int(level)
    resolved = LogConstants.LEVEL_NAMES.get(level.lower())
    if resolved is None:
        raise InvalidLogLevelError(level)
    return resolved


@dataclass(frozen=True)
class LogConfig:
    """Configuration shared by a root logger and the loggers derived from it."""

    level: int | bool = logging.INFO  # False disables logging
    micros: bool = False
    colors: bool = True

    @classmethod
    def from_params(
        cls, level: str | int | bool = "info", micros: bool = False, colors: bool = True
    ) -> LogConfig:
        return cls(level=resolve_level(level), micros=micros, colors=colors)

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any] | None, section: str = "logging"
    ) -> LogConfig:
        """
        Create LogConfig from a configuration mapping.

        Args:
            config: Configuration mapping (e.g. ``Config.to_dict()``)
            section: Dotted path of the logging section

        Example:
            cfg = Config("etc/e2e.yaml")
            log_config = LogConfig.from_config(cfg.to_dict())
        """
        current: Any = config or {}
        for part in section.split("."):
            current = current.get(part, {}) if isinstance(current, Mapping) else {}

        colors = current.get("colors", True)
        if isinstance(colors, Mapping):
            colors = colors.get("enabled", True)

        return cls.from_params(
            level=current.get("level", "info"),
            micros=current.get("micros", False),
            colors=bool(colors),
        )
