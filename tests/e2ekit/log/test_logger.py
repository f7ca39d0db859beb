"""
Tests for loggers and the logger factory.

Tests key logging features including:
- Root logger creation and level handling
- Derived loggers sharing the root's handlers
- TRACE level support
- Pre-populated and per-call structured fields
"""

import logging
from io import StringIO

import pytest

from e2ekit.log import (
    InvalidLogLevelError,
    LogConfig,
    Logger,
    LoggerFactory,
    create_root_lg,
    resolve_level,
)

pytestmark = pytest.mark.unit


# =============================================================================
# Level resolution
# =============================================================================


class TestResolveLevel:
    @pytest.mark.parametrize(
        "level,expected",
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("trace", 5),
            ("15", 15),
            (30, 30),
            (True, logging.INFO),
            (False, False),
            ("false", False),
        ],
    )
    def test_levels(self, level, expected):
        assert resolve_level(level) == expected

    def test_unknown_level(self):
        with pytest.raises(InvalidLogLevelError) as exc_info:
            resolve_level("loud")
        assert exc_info.value.level == "loud"


class TestLogConfig:
    def test_from_params(self):
        config = LogConfig.from_params("debug", micros=True, colors=False)
        assert config == LogConfig(level=logging.DEBUG, micros=True, colors=False)

    def test_from_config(self):
        config = LogConfig.from_config(
            {"logging": {"level": "warning", "micros": True, "colors": False}}
        )
        assert config.level == logging.WARNING
        assert config.micros
        assert not config.colors

    def test_from_config_nested_section_and_color_block(self):
        config = LogConfig.from_config(
            {"suite": {"logging": {"level": "error", "colors": {"enabled": False}}}},
            section="suite.logging",
        )
        assert config.level == logging.ERROR
        assert not config.colors

    def test_from_config_defaults(self):
        assert LogConfig.from_config(None) == LogConfig.from_params()

    def test_frozen(self):
        with pytest.raises(AttributeError):
            LogConfig().level = logging.DEBUG  # type: ignore[misc]


# =============================================================================
# Root loggers
# =============================================================================


class TestRootLogger:
    def test_writes_message_and_name(self, test_logger, log_stream):
        test_logger.info("suite started")
        out = log_stream.getvalue()
        assert "[I] suite started" in out
        assert "[/e2e]" in out

    def test_level_filtering(self, log_stream):
        lg = LoggerFactory.create_root(
            LogConfig.from_params("warning", colors=False), stream=log_stream
        )
        lg.info("hidden")
        lg.warning("shown")
        out = log_stream.getvalue()
        assert "hidden" not in out
        assert "[W] shown" in out

    def test_disabled_logger(self, log_stream):
        lg = LoggerFactory.create_root(
            LogConfig.from_params(False, colors=False), stream=log_stream
        )
        lg.critical("nothing")
        assert lg.disabled
        assert log_stream.getvalue() == ""

    def test_trace_level(self, log_stream):
        lg = LoggerFactory.create_root(
            LogConfig.from_params("trace", colors=False), stream=log_stream
        )
        lg.trace("deep detail", extra={"step": "ready"})
        assert "[T] deep detail" in log_stream.getvalue()
        assert "[step:ready]" in log_stream.getvalue()

    def test_trace_hidden_at_debug(self, test_logger, log_stream):
        test_logger.trace("deep detail")
        assert "deep detail" not in log_stream.getvalue()

    def test_prepopulated_fields(self, sample_log_config, log_stream):
        lg = LoggerFactory.create(
            "/e2e/run", sample_log_config, stream=log_stream, extra={"run": "nightly"}
        )
        lg.info("hello", extra={"feature": "net"})
        out = log_stream.getvalue()
        assert "[feature:net] [run:nightly]" in out

    def test_call_fields_override_prepopulated(self, sample_log_config, log_stream):
        lg = LoggerFactory.create(
            "/e2e/run", sample_log_config, stream=log_stream, extra={"run": "nightly"}
        )
        lg.info("hello", extra={"run": "manual"})
        assert "[run:manual]" in log_stream.getvalue()

    def test_create_root_lg(self, log_stream):
        lg = create_root_lg("debug", stream=log_stream)
        assert isinstance(lg, Logger)
        assert lg.name == "/e2e"
        assert lg.level == logging.DEBUG
        assert not lg.config.colors

    def test_registered_in_logging_manager(self, test_logger):
        assert logging.root.manager.loggerDict["/e2e"] is test_logger


# =============================================================================
# Derived loggers
# =============================================================================


class TestDerivedLogger:
    def test_name(self, test_logger):
        assert LoggerFactory.derive(test_logger, "env").name == "/e2e/env"
        assert (
            LoggerFactory.derive(test_logger, ["env", "feature"]).name
            == "/e2e/env/feature"
        )

    def test_writes_through_root_handlers(self, test_logger, log_stream):
        env_lg = LoggerFactory.derive(test_logger, "env")
        assert env_lg.handlers == []
        env_lg.info("state change", extra={"to": "running"})
        out = log_stream.getvalue()
        assert "[I] state change" in out
        assert "[to:running] " in out
        assert "[/e2e/env]" in out

    def test_derive_is_cached(self, test_logger):
        first = LoggerFactory.derive(test_logger, "env")
        assert LoggerFactory.derive(test_logger, "env") is first

    def test_follows_root_level(self, log_stream):
        root = LoggerFactory.create_root(
            LogConfig.from_params("error", colors=False), stream=log_stream
        )
        derived = LoggerFactory.derive(root, "env")
        derived.warning("hidden")
        derived.error("shown")
        out = log_stream.getvalue()
        assert "hidden" not in out
        assert "shown" in out

    def test_derive_from_derived(self, test_logger, log_stream):
        env_lg = LoggerFactory.derive(test_logger, "env")
        cli_lg = LoggerFactory.derive(env_lg, "cli")
        cli_lg.info("nested")
        assert cli_lg.name == "/e2e/env/cli"
        assert "[/e2e/env/cli]" in log_stream.getvalue()

    def test_separate_streams(self):
        first, second = StringIO(), StringIO()
        config = LogConfig.from_params("info", colors=False)
        LoggerFactory.create_root(config, stream=first, name="/first").info("one")
        LoggerFactory.create_root(config, stream=second, name="/second").info("two")
        assert "one" in first.getvalue() and "two" not in first.getvalue()
        assert "two" in second.getvalue()
