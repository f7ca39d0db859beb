"""Tests for reporters."""

from io import StringIO

import pytest
from rich.console import Console

from e2ekit.env.outcome import FailureKind, Outcome, RunResult, UnitKind, UnitResult
from e2ekit.env.reporter import (
    ConsoleReporter,
    LogReporter,
    MemoryReporter,
    MultiReporter,
)
from e2ekit.exceptions import AssessmentFailure

pytestmark = pytest.mark.unit

PASSED = UnitResult(UnitKind.ASSESSMENT, "ready", Outcome.PASSED, 0.25, feature="dep")
FAILED = UnitResult(
    UnitKind.ASSESSMENT,
    "scales",
    Outcome.FAILED,
    1.5,
    error=AssessmentFailure("replicas 1/3"),
    failure=FailureKind.ASSESSMENT,
    feature="dep",
)
SKIPPED = UnitResult(
    UnitKind.ASSESSMENT, "gpu", Outcome.SKIPPED, reason="not selected", feature="dep"
)
RUN = RunResult((PASSED, FAILED, SKIPPED), duration=2.0)


class TestLogReporter:
    def test_unit_lines(self, test_logger, log_stream):
        reporter = LogReporter(test_logger)
        for u in (PASSED, FAILED, SKIPPED):
            reporter.report(u)

        lines = log_stream.getvalue().splitlines()
        assert "[I] PASS ready" in lines[0]
        assert "[after:250ms]" in lines[0]
        assert "[feature:dep]" in lines[0]
        assert "[E] FAIL scales" in lines[1]
        assert "[failure:assessment]" in lines[1]
        assert "[error:replicas 1/3]" in lines[1]
        assert "[W] SKIP gpu" in lines[2]
        assert "[reason:not selected]" in lines[2]

    def test_summary(self, test_logger, log_stream):
        LogReporter(test_logger).summary(RUN)
        out = log_stream.getvalue()
        assert "run failed" in out
        assert "[exit:1]" in out
        assert "[failed:1]" in out


class TestConsoleReporter:
    def test_summary_table(self):
        buf = StringIO()
        console = Console(file=buf, width=120, no_color=True)
        reporter = ConsoleReporter(console)
        reporter.report(PASSED)

        reporter.summary(RUN)

        out = buf.getvalue()
        assert "dep/ready" in out
        assert "replicas 1/3" in out
        assert "not selected" in out
        assert "FAILED" in out
        assert "exit=1" in out

    def test_hide_skipped(self):
        buf = StringIO()
        ConsoleReporter(Console(file=buf, width=120), show_skipped=False).summary(RUN)
        assert "dep/gpu" not in buf.getvalue()


class TestMemoryAndMulti:
    def test_memory_reporter(self):
        mem = MemoryReporter()
        mem.report(PASSED)
        mem.report(SKIPPED)
        mem.summary(RUN)
        assert mem.names() == ["ready", "gpu"]
        assert mem.names(Outcome.SKIPPED) == ["gpu"]
        assert mem.last is RUN

    def test_memory_reporter_without_runs(self):
        assert MemoryReporter().last is None

    def test_multi_reporter_fans_out(self):
        first, second = MemoryReporter(), MemoryReporter()
        multi = MultiReporter(first, second)
        multi.report(FAILED)
        multi.summary(RUN)
        assert first.units == second.units == [FAILED]
        assert first.runs == second.runs == [RUN]
