"""Tests for the per-step T handle."""

import pytest

from e2ekit.context import Context
from e2ekit.env.tester import FailNow, SkipNow, T

pytestmark = pytest.mark.unit


@pytest.fixture
def t():
    return T("check pods", Context.background())


class TestT:
    def test_initial_state(self, t):
        assert t.name == "check pods"
        assert not t.failed
        assert not t.skipped
        assert t.messages == ()

    def test_log_records_without_failing(self, t):
        t.log("3 pods ready")
        assert t.messages == ("3 pods ready",)
        assert not t.failed

    def test_error_records_and_fails(self, t):
        t.error("pod restarted")
        assert t.failed
        assert t.messages == ("pod restarted",)

    def test_fail_now_raises(self, t):
        with pytest.raises(FailNow):
            t.fail_now()
        assert t.failed

    def test_fatal_records_and_raises(self, t):
        with pytest.raises(FailNow):
            t.fatal("no pods")
        assert t.failed
        assert t.messages == ("no pods",)

    def test_skip_raises_and_records_reason(self, t):
        with pytest.raises(SkipNow):
            t.skip("needs GPU")
        assert t.skipped
        assert t.skip_reason == "needs GPU"

    def test_control_exceptions_escape_except_exception(self, t):
        with pytest.raises(FailNow):
            try:
                t.fatal("stop")
            except Exception:
                pytest.fail("FailNow must not be an Exception")

    def test_context_is_the_input_context(self):
        ctx = Context.background().with_value("ns", "e2e")
        assert T("x", ctx).context.value("ns") == "e2e"

    def test_logs_through_logger(self, test_logger, log_stream):
        T("x", Context.background(), test_logger).log("hello")
        assert "hello" in log_stream.getvalue()
        assert "[unit:x]" in log_stream.getvalue()

    def test_repr(self, t):
        assert "check pods" in repr(t)
