"""
Factory for root loggers and the derived loggers that share their handlers.
"""

import logging
import sys
from typing import IO, Any, cast

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


class LoggerFactory:
    """Factory for creating and deriving loggers."""

    @staticmethod
    def create_root(
        config: LogConfig, stream: IO[str] | None = None, name: str = "/e2e"
    ) -> Logger:
        """
        Create a root logger writing to ``stream`` (stdout by default).

        Example:
            >>> lg = LoggerFactory.create_root(LogConfig.from_params("debug"))
            >>> lg.info("suite started", extra={"features": 3})
            [12:34:56,789] [I] suite started     [features:3] [1234] [/e2e]
        """
        return LoggerFactory.create(name, config, stream=stream)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        stream: IO[str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> Logger:
        """
        Create (or replace) a logger with its own console handler.

        Args:
            name: Logger name, conventionally a ``/``-separated path
            config: Logger configuration
            stream: Output stream, defaults to ``sys.stdout``
            extra: Pre-populated fields added to every record
        """
        lg = Logger(name, config, extra)
        if config.level is not False:
            lg.setLevel(config.level)

        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(LogFormatter(config))
        lg.addHandler(handler)
        lg.propagate = False
        lg.parent = logging.root

        logging.root.manager.loggerDict[name] = lg
        lg.trace(
            "created logger",
            extra={"level": logging.getLevelName(lg.level), "colors": config.colors},
        )
        return lg

    @staticmethod
    def derive(parent: Logger, tags: str | list[str]) -> Logger:
        """
        Derive a "view" logger that delegates to the root's handlers.

        Examples:
            >>> root = LoggerFactory.create_root(config)      # "/e2e"
            >>> LoggerFactory.derive(root, ["env", "feature"]).name
            '/e2e/env/feature'
        """
        if isinstance(tags, str):
            tags = [tags]
        prefix = parent.name if parent.name.endswith("/") else parent.name + "/"
        name = prefix + "/".join(tags)

        existing = logging.root.manager.loggerDict.get(name)
        if isinstance(existing, Logger):
            return cast(Logger, existing)

        lg = parent.__class__(name, parent.config)
        lg.setLevel(logging.NOTSET)
        lg._root_logger = parent._root_logger or parent
        lg.parent = parent
        lg.propagate = False
        logging.root.manager.loggerDict[name] = lg
        return lg
