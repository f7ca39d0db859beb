"""Tests for monotonic timing helpers."""

import pytest

from e2ekit.time import since, start, time_it_lg

pytestmark = pytest.mark.unit


class TestTiming:
    def test_since_is_non_negative(self):
        t0 = start()
        assert since(t0) >= 0

    def test_start_is_monotonic(self):
        assert start() <= start()


class TestTimeItLg:
    def test_logs_duration(self):
        calls = []
        with time_it_lg(lambda msg, extra: calls.append((msg, extra)), "setup done"):
            pass
        ((msg, extra),) = calls
        assert msg == "setup done"
        assert extra["after"] >= 0

    def test_keeps_extra_fields(self):
        calls = []
        fields = {"feature": "net"}
        with time_it_lg(lambda msg, extra: calls.append(extra), "done", fields):
            pass
        assert calls[0]["feature"] == "net"
        assert "after" not in fields

    def test_logs_when_block_raises(self):
        calls = []
        with pytest.raises(RuntimeError):
            with time_it_lg(lambda msg, extra: calls.append(msg), "done"):
                raise RuntimeError("boom")
        assert calls == ["done"]

    def test_with_logger(self, test_logger, log_stream):
        with time_it_lg(test_logger.debug, "global setup done"):
            pass
        assert "[D] global setup done" in log_stream.getvalue()
        assert "[after:" in log_stream.getvalue()
