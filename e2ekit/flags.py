"""
Command-line flags that populate an ``EnvConfig``.

The flag set is parsed with ``argparse.parse_known_args`` so that test
suites can declare their own flags alongside these; anything unrecognized is
kept in ``EnvFlags.extra``.

Example:
    flags = parse_args(["--feature", "^net", "--skip-labels", "flaky=true"])
    cfg = flags.apply(EnvConfig())
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import ConfigError

if TYPE_CHECKING:
    from .envconf import EnvConfig


class LabelsMap(dict[str, str]):
    """Label set parsed from ``key=value[,key=value...]``."""

    @classmethod
    def parse(cls, val: str) -> LabelsMap:
        """
        Parse a comma-separated ``key=value`` list; whitespace is trimmed.

        Raises:
            ConfigError: If an entry is not exactly one ``key=value`` pair
        """
        labels = cls()
        for label in val.split(","):
            kv = label.split("=")
            if len(kv) != 2 or not kv[0].strip():
                raise ConfigError("label format error", label=label)
            labels[kv[0].strip()] = kv[1].strip()
        return labels

    def __str__(self) -> str:
        return ",".join(f"{k}={v}" for k, v in self.items())


def _labels_arg(val: str) -> LabelsMap:
    try:
        return LabelsMap.parse(val)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


@dataclass
class EnvFlags:
    """Parsed flag values; ``None`` means the flag was not given."""

    feature: str | None = None
    assess: str | None = None
    labels: LabelsMap | None = None
    skip_labels: LabelsMap | None = None
    skip_features: str | None = None
    skip_assessment: str | None = None
    parallel: bool | None = None
    dry_run: bool | None = None
    fail_fast: bool | None = None
    disable_graceful_teardown: bool | None = None
    namespace: str | None = None
    kubeconfig: str | None = None
    config: str | None = None
    log_level: str | None = None
    extra: list[str] = field(default_factory=list)

    def apply(self, cfg: EnvConfig) -> EnvConfig:
        """
        Apply the flags to ``cfg``: the ``--config`` file first, then every
        flag that was explicitly given.
        """
        if self.config:
            cfg.apply_file(self.config)

        if self.namespace is not None:
            cfg.with_namespace(self.namespace)
        if self.kubeconfig is not None:
            cfg.with_kubeconfig_file(self.kubeconfig)
        if self.feature is not None:
            cfg.with_feature_regex(self.feature)
        if self.assess is not None:
            cfg.with_assessment_regex(self.assess)
        if self.skip_features is not None:
            cfg.with_skip_feature_regex(self.skip_features)
        if self.skip_assessment is not None:
            cfg.with_skip_assessment_regex(self.skip_assessment)
        if self.labels is not None:
            cfg.with_labels(self.labels)
        if self.skip_labels is not None:
            cfg.with_skip_labels(self.skip_labels)

        if self.parallel is not None:
            cfg.with_parallel_test_enabled(self.parallel)
        if self.dry_run is not None:
            cfg.with_dry_run_mode(self.dry_run)
        if self.fail_fast is not None:
            cfg.with_fail_fast_mode(self.fail_fast)
        if self.disable_graceful_teardown is not None:
            cfg.with_disable_graceful_teardown(self.disable_graceful_teardown)
        return cfg


def add_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add the e2e flag set to ``parser``."""
    sel = parser.add_argument_group("selection")
    sel.add_argument("--feature", metavar="REGEX", help="run features matching REGEX")
    sel.add_argument(
        "--assess", metavar="REGEX", help="run assessments matching REGEX"
    )
    sel.add_argument(
        "--labels",
        type=_labels_arg,
        metavar="K=V,...",
        help="run units carrying any of these labels",
    )
    sel.add_argument(
        "--skip-labels",
        type=_labels_arg,
        metavar="K=V,...",
        help="skip units carrying any of these labels",
    )
    sel.add_argument(
        "--skip-features", metavar="REGEX", help="skip features matching REGEX"
    )
    sel.add_argument(
        "--skip-assessment", metavar="REGEX", help="skip assessments matching REGEX"
    )

    run = parser.add_argument_group("run modes")
    for flag, help_text in (
        ("--parallel", "run the assessments of a feature concurrently"),
        ("--dry-run", "report what would run without running anything"),
        ("--fail-fast", "stop at the first failure (teardown and finish still run)"),
        (
            "--disable-graceful-teardown",
            "let a raising step abort the run without teardown or finish",
        ),
    ):
        run.add_argument(flag, action="store_true", default=None, help=help_text)

    env = parser.add_argument_group("environment")
    env.add_argument("--namespace", help="namespace used by the suite")
    env.add_argument("--kubeconfig", metavar="PATH", help="kubeconfig file path")
    env.add_argument("--config", metavar="PATH", help="YAML config file")
    env.add_argument(
        "--log-level",
        choices=["trace", "debug", "info", "warning", "error", "critical"],
        help="log level (default: the config file's logging.level, else info)",
    )
    return parser


def parse_args(
    argv: Sequence[str] | None = None, parser: argparse.ArgumentParser | None = None
) -> EnvFlags:
    """
    Parse e2e flags from ``argv`` (``sys.argv[1:]`` when omitted).

    Raises:
        ConfigError: On a malformed label list
    """
    if parser is None:
        parser = argparse.ArgumentParser(add_help=False)
    add_arguments(parser)

    args = list(argv) if argv is not None else sys.argv[1:]
    for name in ("--labels", "--skip-labels"):
        _check_labels(args, name)

    ns, extra = parser.parse_known_args(args)
    return from_namespace(ns, extra)


def from_namespace(ns: argparse.Namespace, extra: list[str] | None = None) -> EnvFlags:
    """Build ``EnvFlags`` from a namespace produced by ``add_arguments``."""
    return EnvFlags(
        feature=ns.feature,
        assess=ns.assess,
        labels=ns.labels,
        skip_labels=ns.skip_labels,
        skip_features=ns.skip_features,
        skip_assessment=ns.skip_assessment,
        parallel=ns.parallel,
        dry_run=ns.dry_run,
        fail_fast=ns.fail_fast,
        disable_graceful_teardown=ns.disable_graceful_teardown,
        namespace=ns.namespace,
        kubeconfig=ns.kubeconfig,
        config=ns.config,
        log_level=ns.log_level,
        extra=list(extra or []),
    )


def _check_labels(argv: list[str], name: str) -> None:
    # argparse exits on a bad type; validate up front so callers get ConfigError
    if not argv:
        return
    for i, arg in enumerate(argv):
        if arg == name and i + 1 < len(argv):
            LabelsMap.parse(argv[i + 1])
        elif arg.startswith(name + "="):
            LabelsMap.parse(arg[len(name) + 1 :])
