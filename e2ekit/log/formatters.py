"""
Log formatter producing aligned, optionally colored, structured lines.

Output shape::

    [12:34:56,789] [I] feature passed            [after:12ms] [feature:net] [/e2e/env]

Structured fields come from the ``extra`` mapping attached by ``Logger``.
The ``after`` field (a duration in seconds) is always rendered first and
formatted with ``delta_str``; an ``exception`` field is rendered as a
trailing ``ExcType: message`` line.
"""

import collections
import logging
import re
import traceback
from typing import Any

from ..time import delta_str
from .config import LogConfig
from .constants import LogConstants

EXTRA_ATTR = "__e2e__extra"

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


def _visual_len(text: str) -> int:
    if "\x1b" not in text:
        return len(text)
    return len(_ANSI_PATTERN.sub("", text))


def _ordered_keys(extra: dict[str, Any]) -> list[str]:
    keys = list(extra.keys())
    if not isinstance(extra, collections.OrderedDict):
        keys.sort()
    keys = [k for k in keys if k not in ("after", "exception")]
    if "after" in extra:
        keys.insert(0, "after")
    return keys


def _render_value(key: str, value: Any) -> str:
    if key == "after" and isinstance(value, (int, float)):
        return delta_str(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def _render_exception(e: BaseException) -> str:
    out = f"{e.__class__.__name__}: {e}"
    if e.__traceback__ is None:
        return out
    for frame in traceback.extract_tb(e.__traceback__):
        out += f'\n  File "{frame.filename}", line {frame.lineno}, in {frame.name}'
        if frame.line:
            out += f"\n    {frame.line.strip()}"
    return out


class LogFormatter(logging.Formatter):
    """Formatter rendering message, structured fields, process and logger name."""

    def __init__(self, config: LogConfig) -> None:
        super().__init__(LogConstants.DEFAULT_FORMAT)
        self._config = config

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        s = super().formatTime(record, "%H:%M:%S")
        s += f",{int(record.msecs):03d}"
        if self._config.micros:
            s += f".{int((record.created % 1) * 1_000_000) % 1000:03d}"
        return s

    def format(self, record: logging.LogRecord) -> str:
        head = super().format(record)
        rule = (
            LogConstants.MICRO_RULE_WIDTH
            if self._config.micros
            else LogConstants.DEFAULT_RULE_WIDTH
        )
        pad = " " * max(1, rule - _visual_len(head))

        extra = getattr(record, EXTRA_ATTR, None) or {}
        fields = [f"[{k}:{_render_value(k, extra[k])}]" for k in _ordered_keys(extra)]
        fields.append(f"[{record.process}]")
        fields.append(f"[{record.name}]")
        line = head + pad + " ".join(fields)

        exc = extra.get("exception")
        if isinstance(exc, BaseException):
            line += "\n" + _render_exception(exc)

        if self._config.colors:
            return self._colorize(record.levelno, line)
        return line

    @staticmethod
    def _colorize(levelno: int, line: str) -> str:
        col = LogConstants.COLORS.get(levelno, LogConstants.DEFAULT_COLOR)
        return f"{col}m{line}{LogConstants.RESET}"
