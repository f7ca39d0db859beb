"""
Regex helpers for user-supplied selection filters.

Feature and assessment filters come straight from the command line or a
config file, so they are compiled through ``safe_compile`` which rejects
patterns prone to catastrophic backtracking before handing them to ``re``.

Timeout protection relies on ``SIGALRM`` and is therefore only armed on Unix
and only from the main thread; elsewhere compilation runs unguarded.

Example Usage:
    from e2ekit.regex_utils import safe_compile, safe_search

    pattern = safe_compile(r"net-.*")
    if safe_search(pattern, "net-policy"):
        ...
"""

import re
import signal
import threading
from collections.abc import Generator
from contextlib import contextmanager
from re import Match, Pattern
from typing import Any


class RegexTimeoutError(TimeoutError):
    """Raised when regex compilation or matching exceeds the timeout."""

    pass


class RegexComplexityError(ValueError):
    """Raised when a regex pattern is too long or has nested quantifiers."""

    pass


MAX_PATTERN_LENGTH = 1000

# Nested quantifiers such as (.+)+ or (a*)* are the usual ReDoS culprits
DANGEROUS_PATTERNS = [
    r"\([^)]*[*+]\)[*+{]",
    r"\([^)]*\{[^}]+\}\)[*+{]",
]


def _validate_pattern_complexity(pattern: str) -> None:
    """
    Reject overly long patterns and patterns with nested quantifiers.

    Raises:
        RegexComplexityError: If the pattern is considered dangerous
    """
    if len(pattern) > MAX_PATTERN_LENGTH:
        raise RegexComplexityError(
            f"Pattern too long ({len(pattern)} chars, max {MAX_PATTERN_LENGTH})"
        )

    for dangerous in DANGEROUS_PATTERNS:
        if re.search(dangerous, pattern):
            raise RegexComplexityError(
                "Pattern contains nested quantifiers that may cause ReDoS. "
                "Avoid patterns like (.+)+ or (.*)*."
            )


def _can_use_alarm() -> bool:
    return (
        hasattr(signal, "SIGALRM")
        and threading.current_thread() is threading.main_thread()
    )


@contextmanager
def _timeout_context(timeout: float | None) -> Generator[None, None, None]:
    """Arm SIGALRM for the duration of the block when it is safe to do so."""
    if timeout is None or not _can_use_alarm():
        yield
        return

    def timeout_handler(signum: int, frame: Any) -> None:
        raise RegexTimeoutError(f"Regex operation exceeded {timeout}s timeout")

    old_handler = signal.signal(signal.SIGALRM, timeout_handler)
    signal.alarm(max(1, int(timeout)))
    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, old_handler)


def safe_compile(pattern: str, flags: int = 0, timeout: float | None = 1.0) -> Pattern:
    """
    Validate and compile a user-provided regex pattern.

    Args:
        pattern: Regex pattern string to compile
        flags: Regex flags (re.IGNORECASE, etc.)
        timeout: Maximum compilation time in seconds (None to disable)

    Returns:
        Compiled regex pattern

    Raises:
        RegexComplexityError: If pattern is too complex
        RegexTimeoutError: If compilation exceeds timeout
        re.error: If pattern is invalid

    Example:
        >>> safe_compile(r"^[a-z]+$").match("hello")
        <re.Match object; span=(0, 5), match='hello'>
    """
    _validate_pattern_complexity(pattern)
    with _timeout_context(timeout):
        return re.compile(pattern, flags)


def safe_search(
    pattern: str | Pattern,
    string: str,
    flags: int = 0,
    timeout: float | None = 1.0,
) -> Match[str] | None:
    """
    Unanchored search for a pattern, compiling it first if needed.

    Args:
        pattern: Regex pattern (string or compiled)
        string: String to search
        flags: Regex flags (only used if pattern is a string)
        timeout: Maximum search time in seconds (None to disable)

    Returns:
        Match object or None
    """
    compiled = (
        safe_compile(pattern, flags, timeout) if isinstance(pattern, str) else pattern
    )
    with _timeout_context(timeout):
        return compiled.search(string)
