"""
Per-unit outcomes and their aggregation into a run result.

Every reported unit (global setup, feature hook, feature, feature setup,
assessment, teardown, global finish) produces exactly one ``UnitResult``.
The run fails if any unit failed; skipped units never count, so a run in
which everything was skipped still passes.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from ..time import delta_str


class Outcome(enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class UnitKind(enum.Enum):
    SETUP = "setup"
    BEFORE_FEATURE = "before-feature"
    FEATURE = "feature"
    FEATURE_SETUP = "feature-setup"
    ASSESSMENT = "assessment"
    TEARDOWN = "teardown"
    AFTER_FEATURE = "after-feature"
    FINISH = "finish"


class FailureKind(enum.Enum):
    """Why a unit failed."""

    SETUP = "setup"
    ASSESSMENT = "assessment"
    TEARDOWN = "teardown"
    FINISH = "finish"
    PANIC = "panic"
    CANCELLED = "cancelled"


# exit codes
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SETUP_FAILED = 100
EXIT_FINISH_FAILED = 200

DRY_RUN_REASON = "would run (dry-run)"


@dataclass(frozen=True)
class UnitResult:
    kind: UnitKind
    name: str
    outcome: Outcome
    duration: float = 0.0
    error: BaseException | None = None
    failure: FailureKind | None = None
    reason: str = ""
    messages: tuple[str, ...] = ()
    feature: str = ""

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.PASSED

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED

    @property
    def skipped(self) -> bool:
        return self.outcome is Outcome.SKIPPED

    @property
    def path(self) -> str:
        """``feature/name`` for units inside a feature, else ``name``."""
        if self.feature and self.kind is not UnitKind.FEATURE:
            return f"{self.feature}/{self.name}"
        return self.name

    @property
    def text(self) -> str:
        """Error text for the summary (empty when there is none)."""
        if self.error is None:
            return self.reason if self.failed else ""
        if self.failure is FailureKind.PANIC:
            return f"panic: {type(self.error).__name__}: {self.error}"
        return str(self.error)

    def __str__(self) -> str:
        s = f"{self.outcome.value.upper()} {self.kind.value} {self.path}"
        s += f" ({delta_str(self.duration)})"
        if self.failed and self.text:
            s += f": {self.text}"
        elif self.skipped and self.reason:
            s += f": {self.reason}"
        return s


@dataclass(frozen=True)
class RunResult:
    """Aggregated result of one run, units in the order they were reported."""

    units: tuple[UnitResult, ...] = ()
    setup_error: BaseException | None = None
    duration: float = 0.0
    dry_run: bool = False

    @property
    def outcome(self) -> Outcome:
        if self.setup_error is not None or self.failed:
            return Outcome.FAILED
        return Outcome.PASSED

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.PASSED

    @property
    def passed(self) -> list[UnitResult]:
        return [u for u in self.units if u.passed]

    @property
    def failed(self) -> list[UnitResult]:
        return [u for u in self.units if u.failed]

    @property
    def skipped(self) -> list[UnitResult]:
        return [u for u in self.units if u.skipped]

    @property
    def exit_code(self) -> int:
        """
        Process exit code.

        0 when the run passed, 100 when global setup failed, 1 for any other
        failure, and 200 when only global finish funcs failed.
        """
        if self.ok:
            return EXIT_OK
        failed = self.failed
        if self.setup_error is not None or any(
            u.kind is UnitKind.SETUP for u in failed
        ):
            return EXIT_SETUP_FAILED
        if any(u.kind is not UnitKind.FINISH for u in failed):
            return EXIT_FAILED
        return EXIT_FINISH_FAILED

    def by_kind(self, kind: UnitKind) -> list[UnitResult]:
        return [u for u in self.units if u.kind is kind]

    def find(
        self, name: str, kind: UnitKind | None = None, feature: str | None = None
    ) -> UnitResult | None:
        """Return the first unit called ``name``, optionally narrowed."""
        for u in self.units:
            if u.name != name:
                continue
            if kind is not None and u.kind is not kind:
                continue
            if feature is not None and u.feature != feature:
                continue
            return u
        return None

    def counts(self) -> dict[str, int]:
        return _count(self.units)


def _count(units: Iterable[UnitResult]) -> dict[str, int]:
    counts = {o.value: 0 for o in Outcome}
    for u in units:
        counts[u.outcome.value] += 1
    return counts
