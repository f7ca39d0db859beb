"""Timing and duration formatting utilities."""

from .delta import InvalidDurationError, delta_str
from .time import since, start, time_it_lg

__all__ = [
    "InvalidDurationError",
    "delta_str",
    "since",
    "start",
    "time_it_lg",
]
