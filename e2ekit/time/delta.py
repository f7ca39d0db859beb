"""
Duration formatting for run summaries.

Example Usage:
    >>> delta_str(3661.5)
    '1h1m1s'
    >>> delta_str(0.0123)
    '12ms'
"""

import math

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60
MILLISECONDS_PER_SECOND = 1000
MICROSECONDS_PER_SECOND = 1_000_000


class InvalidDurationError(ValueError):
    """Raised when an invalid duration value is provided."""

    pass


def _validate_duration_input(secs: float) -> None:
    if isinstance(secs, bool) or not isinstance(secs, (int, float)):
        raise InvalidDurationError(
            f"Duration must be a number, got {type(secs).__name__}"
        )
    if math.isnan(secs):
        raise InvalidDurationError("Duration cannot be NaN")
    if math.isinf(secs):
        raise InvalidDurationError("Duration cannot be infinite")
    if secs < 0:
        raise InvalidDurationError(f"Duration cannot be negative, got {secs}")


def _format_subsecond(secs: float) -> str:
    if secs < 0.001:
        return f"{int(secs * MICROSECONDS_PER_SECOND)}μs"

    msecs = secs * MILLISECONDS_PER_SECOND
    if msecs < 10:
        return f"{msecs:.3f}".rstrip("0").rstrip(".") + "ms"

    rounded = round(msecs)
    if rounded >= MILLISECONDS_PER_SECOND:
        return "1s"
    return f"{rounded}ms"


def _format_seconds(secs: float) -> str:
    isecs = int(secs)
    msecs = round((secs - isecs) * MILLISECONDS_PER_SECOND)
    if msecs >= MILLISECONDS_PER_SECOND:
        return f"{isecs + 1}s"
    if isecs < 10 and msecs > 0:
        return f"{isecs}.{msecs:03d}s"
    return f"{isecs}s"


def delta_str(secs: float | None) -> str:
    """
    Format a duration in seconds as a compact human-readable string.

    Args:
        secs: Duration in seconds (None renders as an empty string)

    Returns:
        Formatted duration such as ``"850μs"``, ``"9.5ms"``, ``"1.250s"``,
        ``"42s"`` or ``"1h2m3s"``

    Raises:
        InvalidDurationError: If secs is negative, NaN, infinite or not a number
    """
    if secs is None:
        return ""
    _validate_duration_input(secs)

    if secs == 0:
        return "0s"
    if secs < 1:
        return _format_subsecond(secs)
    if secs < SECONDS_PER_MINUTE:
        return _format_seconds(secs)

    remaining = int(secs)
    days, remaining = divmod(remaining, SECONDS_PER_DAY)
    hours, remaining = divmod(remaining, SECONDS_PER_HOUR)
    minutes, isecs = divmod(remaining, SECONDS_PER_MINUTE)

    result = ""
    if days:
        result += f"{days}d"
    if hours or result:
        result += f"{hours}h"
    return result + f"{minutes}m{isecs}s"
