#!/usr/bin/env python3
"""
e2ekit CLI - run a suite defined in a Python module.

Usage:
    e2ekit tests.e2e.suite:env --feature '^net' --parallel
    e2ekit tests.e2e.suite:make_env --dry-run
    e2ekit --version

The target names a module and an attribute holding an ``Environment`` or a
zero-argument callable returning one. Flags are applied to the
environment's config before the run; the process exits with the run's exit
code.
"""

import argparse
import dataclasses
import importlib
import importlib.util
import os
import sys
from collections.abc import Sequence
from typing import Any

import e2ekit

from .config import Config
from .env import ConsoleReporter, Environment, LogReporter, MultiReporter
from .exceptions import ConfigError, E2EError
from .flags import EnvFlags, add_arguments, from_namespace
from .log import LogConfig, Logger, LoggerFactory, resolve_level

EXIT_USAGE = 2


def version_string() -> str:
    """Package version, followed by the build commit when the install recorded one."""
    text = f"e2ekit {e2ekit.__version__}"
    if importlib.util.find_spec("e2ekit._build_info") is None:
        return text
    build_info = importlib.import_module("e2ekit._build_info")
    commit = getattr(build_info, "COMMIT_SHORT", "")
    if commit:
        suffix = "-modified" if getattr(build_info, "MODIFIED", False) else ""
        text += f" ({commit}{suffix})"
    return text


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="e2ekit", description="Run an end-to-end test environment."
    )
    parser.add_argument("--version", action="version", version=version_string())
    parser.add_argument(
        "target", metavar="MODULE:ATTR", help="environment to run, e.g. suite:env"
    )
    return add_arguments(parser)


def load_target(target: str) -> Environment:
    """
    Import ``module:attr`` and return the environment it names.

    Raises:
        ConfigError: If the target is malformed or does not name an environment
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ConfigError("target must look like module:attribute", target=target)

    # suites are usually importable from the working directory
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError("cannot import suite module", module=module_name) from e

    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError("attribute not found", target=target) from e

    if not isinstance(obj, Environment) and callable(obj):
        obj = obj()
    if not isinstance(obj, Environment):
        raise ConfigError(
            "target is not an Environment", target=target, type=type(obj).__name__
        )
    return obj


def log_config(flags: EnvFlags, colors: bool = False) -> LogConfig:
    """
    Logging settings for a run.

    The ``logging`` section of ``--config`` is used when present; an explicit
    ``--log-level`` overrides its level.

    Raises:
        ConfigError: If the config file cannot be loaded
    """
    config = LogConfig.from_params(colors=colors)
    if flags.config:
        loaded = Config(flags.config)
        if loaded.has("logging"):
            config = LogConfig.from_config(loaded.to_dict())
    if flags.log_level is not None:
        config = dataclasses.replace(config, level=resolve_level(flags.log_level))
    return config


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the e2ekit CLI."""
    parser = _build_parser()
    ns, extra = parser.parse_known_args(argv)
    flags = from_namespace(ns, extra)

    try:
        config = log_config(flags, colors=sys.stdout.isatty())
    except ConfigError as e:
        print(f"e2ekit: {e}", file=sys.stderr)
        return EXIT_USAGE

    lg: Logger = LoggerFactory.create_root(config)
    cli_lg = LoggerFactory.derive(lg, "cli")

    try:
        env = load_target(ns.target)
        flags.apply(env.config)
        if extra:
            cli_lg.debug("unrecognized arguments", extra={"args": " ".join(extra)})
        reporter = MultiReporter(LogReporter(lg), ConsoleReporter())
        return env.run(reporter)
    except ConfigError as e:
        cli_lg.error("invalid invocation", extra={"exception": e})
        return EXIT_USAGE
    except E2EError as e:
        cli_lg.error("run aborted", extra={"exception": e})
        return 1


if __name__ == "__main__":
    sys.exit(main())
