"""
Reporters: where unit outcomes go while a run progresses.

A reporter receives each ``UnitResult`` as soon as the unit completes and
the aggregated ``RunResult`` once the run is done.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import TYPE_CHECKING, Protocol

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..time import delta_str
from .outcome import Outcome, RunResult, UnitKind, UnitResult

if TYPE_CHECKING:
    from ..log import Logger


class Reporter(Protocol):
    def report(self, unit: UnitResult) -> None: ...

    def summary(self, run: RunResult) -> None: ...


class LogReporter:
    """One log line per unit plus a closing summary line."""

    def __init__(self, lg: Logger) -> None:
        self._lg = lg

    def report(self, unit: UnitResult) -> None:
        extra: dict[str, object] = {"kind": unit.kind.value, "after": unit.duration}
        if unit.feature and unit.kind is not UnitKind.FEATURE:
            extra["feature"] = unit.feature

        if unit.outcome is Outcome.FAILED:
            extra["failure"] = unit.failure.value if unit.failure else "unknown"
            if unit.text:
                extra["error"] = unit.text
            self._lg.error(f"FAIL {unit.name}", extra=extra)
        elif unit.outcome is Outcome.SKIPPED:
            if unit.reason:
                extra["reason"] = unit.reason
            self._lg.warning(f"SKIP {unit.name}", extra=extra)
        else:
            self._lg.info(f"PASS {unit.name}", extra=extra)

    def summary(self, run: RunResult) -> None:
        extra = dict(run.counts())
        extra["exit"] = run.exit_code
        extra["after"] = run.duration
        if run.ok:
            self._lg.info("run passed", extra=extra)
        else:
            self._lg.error("run failed", extra=extra)


_STYLES = {
    Outcome.PASSED: "green",
    Outcome.FAILED: "red bold",
    Outcome.SKIPPED: "yellow",
}


def _console() -> Console:
    no_color = bool(os.environ.get("NO_COLOR"))
    return Console(file=sys.stdout, no_color=no_color, highlight=False)


class ConsoleReporter:
    """Prints a ``rich`` summary table when the run is done."""

    def __init__(self, console: Console | None = None, show_skipped: bool = True):
        self._console = console or _console()
        self._show_skipped = show_skipped

    def report(self, unit: UnitResult) -> None:
        pass

    def summary(self, run: RunResult) -> None:
        table = Table(title="e2e results")
        table.add_column("Unit")
        table.add_column("Kind")
        table.add_column("Outcome")
        table.add_column("Duration", justify="right")
        table.add_column("Error")

        for unit in run.units:
            if unit.skipped and not self._show_skipped:
                continue
            table.add_row(
                unit.path,
                unit.kind.value,
                Text(unit.outcome.value, style=_STYLES[unit.outcome]),
                delta_str(unit.duration),
                unit.text if unit.failed else unit.reason,
            )

        self._console.print(table)
        counts = run.counts()
        status = Text(run.outcome.value.upper(), style=_STYLES[run.outcome])
        self._console.print(
            status,
            f"passed={counts['passed']} failed={counts['failed']} "
            f"skipped={counts['skipped']} exit={run.exit_code} "
            f"in {delta_str(run.duration)}",
        )


class MemoryReporter:
    """Collects everything reported; used by tests and embedding callers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.units: list[UnitResult] = []
        self.runs: list[RunResult] = []

    def report(self, unit: UnitResult) -> None:
        with self._lock:
            self.units.append(unit)

    def summary(self, run: RunResult) -> None:
        with self._lock:
            self.runs.append(run)

    @property
    def last(self) -> RunResult | None:
        return self.runs[-1] if self.runs else None

    def names(self, outcome: Outcome | None = None) -> list[str]:
        return [u.name for u in self.units if outcome is None or u.outcome is outcome]


class MultiReporter:
    """Fans every call out to several reporters, in order."""

    def __init__(self, *reporters: Reporter) -> None:
        self._reporters = list(reporters)

    def report(self, unit: UnitResult) -> None:
        for r in self._reporters:
            r.report(unit)

    def summary(self, run: RunResult) -> None:
        for r in self._reporters:
            r.summary(run)
