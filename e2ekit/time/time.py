"""
Monotonic timing helpers.

Every duration reported for a unit is measured with these functions so that
wall-clock adjustments during a long suite never produce negative timings.

Example Usage:
    t0 = start()
    run_step()
    lg.info("step done", extra={"after": since(t0)})
"""

import contextlib
import time
from collections.abc import Callable, Generator
from typing import Any


def start() -> float:
    """Return the current monotonic time in seconds."""
    return time.monotonic()


def since(start_t: float) -> float:
    """Return the seconds elapsed since ``start_t``."""
    return time.monotonic() - start_t


@contextlib.contextmanager
def time_it_lg(
    lg_func: Callable[..., Any], msg: str, extra: dict[str, Any] | None = None
) -> Generator[None, None, None]:
    """
    Log ``msg`` with an ``after`` field holding the block's duration.

    Example:
        with time_it_lg(lg.debug, "setting up"):
            ...
    """
    t0 = start()
    try:
        yield
    finally:
        fields = dict(extra or {})
        fields["after"] = since(t0)
        lg_func(msg, extra=fields)
