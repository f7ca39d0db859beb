"""
Shared environment configuration handed to every lifecycle step.

``EnvConfig`` carries the (externally constructed) client, the working
namespace, selection filters, run-mode switches and arbitrary extension
values. It is read-mostly: writes belong in serial phases (global or feature
setup). While the orchestrator dispatches assessments in parallel it holds
``read_only()``, and any setter called during that window raises
``ConfigError`` instead of racing with the readers.

Example:
    cfg = (
        EnvConfig()
        .with_random_namespace()
        .with_feature_regex("^net")
        .with_skip_labels({"flaky": "true"})
        .with_parallel_test_enabled()
    )
"""

from __future__ import annotations

import secrets
from collections.abc import Generator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .exceptions import ConfigError

if TYPE_CHECKING:
    from .env.matcher import Selection


def random_name(prefix: str, n: int = 32) -> str:
    """
    Return ``prefix`` followed by ``-`` and random hex, truncated to ``n`` chars.

    If ``prefix`` is already ``n`` characters or longer it is returned as-is.

    Example:
        >>> len(random_name("testns", 16))
        16
    """
    if n == 0:
        n = 32
    if len(prefix) >= n:
        return prefix
    return f"{prefix}-{secrets.token_hex(n)}"[:n]


class EnvConfig:
    """Read-mostly configuration object shared by one run."""

    def __init__(self) -> None:
        self._read_only = False
        self._client: Any = None
        self._kubeconfig = ""
        self._namespace = ""
        self._feature_regex = ""
        self._assessment_regex = ""
        self._skip_feature_regex = ""
        self._skip_assessment_regex = ""
        self._labels: dict[str, str] = {}
        self._skip_labels: dict[str, str] = {}
        self._parallel = False
        self._dry_run = False
        self._fail_fast = False
        self._disable_graceful_teardown = False
        self._values: dict[str, Any] = {}

    # -- construction -----------------------------------------------------

    @classmethod
    def from_flags(cls, argv: Sequence[str] | None = None) -> EnvConfig:
        """
        Build a config from command-line flags.

        A ``--config`` file is applied first; explicit flags override it.

        Raises:
            ConfigError: On malformed labels or an unreadable config file
        """
        from .flags import parse_args

        return parse_args(argv).apply(cls())

    @classmethod
    def from_file(cls, path: str | Path) -> EnvConfig:
        """Build a config from a YAML file (see ``apply_file`` for the layout)."""
        return cls().apply_file(path)

    def apply_file(self, path: str | Path) -> EnvConfig:
        """
        Apply settings from a YAML file.

        Layout::

            namespace: e2e-tests
            kubeconfig: ~/.kube/config
            selection:
              feature: "^net"
              assess: "ready"
              labels: {tier: smoke}
              skip_labels: {flaky: "true"}
              skip_features: "slow"
              skip_assessment: "cleanup"
            run:
              parallel: true
              dry_run: false
              fail_fast: false
              disable_graceful_teardown: false
            values:
              image: nginx:1.27
        """
        from .config import Config

        loaded = Config(path)
        self._check_writable("apply_file")

        if loaded.get("namespace"):
            self._namespace = str(loaded.get("namespace"))
        if loaded.get("kubeconfig"):
            self._kubeconfig = str(Path(str(loaded.get("kubeconfig"))).expanduser())

        sel = loaded.get("selection")
        if sel is not None:
            self._feature_regex = str(sel.get("feature") or self._feature_regex)
            self._assessment_regex = str(sel.get("assess") or self._assessment_regex)
            self._skip_feature_regex = str(
                sel.get("skip_features") or self._skip_feature_regex
            )
            self._skip_assessment_regex = str(
                sel.get("skip_assessment") or self._skip_assessment_regex
            )
            if sel.get("labels") is not None:
                self._labels = _labels_from(sel.get("labels"))
            if sel.get("skip_labels") is not None:
                self._skip_labels = _labels_from(sel.get("skip_labels"))

        run = loaded.get("run")
        if run is not None:
            self._parallel = bool(run.get("parallel", self._parallel))
            self._dry_run = bool(run.get("dry_run", self._dry_run))
            self._fail_fast = bool(run.get("fail_fast", self._fail_fast))
            self._disable_graceful_teardown = bool(
                run.get("disable_graceful_teardown", self._disable_graceful_teardown)
            )

        values = loaded.get("values")
        if values is not None:
            self._values.update(values.to_dict())
        return self

    # -- write guard --------------------------------------------------------

    @contextmanager
    def read_only(self) -> Generator[EnvConfig, None, None]:
        """Forbid writes for the duration of the block (re-entrant)."""
        previous = self._read_only
        self._read_only = True
        try:
            yield self
        finally:
            self._read_only = previous

    @property
    def is_read_only(self) -> bool:
        return self._read_only

    def _check_writable(self, what: str) -> None:
        if self._read_only:
            raise ConfigError(
                "environment config is read-only during parallel dispatch",
                setter=what,
            )

    # -- client / namespace ------------------------------------------------------

    def with_client(self, client: Any) -> EnvConfig:
        """Attach an already constructed client for the system under test."""
        self._check_writable("with_client")
        self._client = client
        return self

    @property
    def client(self) -> Any:
        return self._client

    def with_kubeconfig_file(self, path: str) -> EnvConfig:
        """Record a kubeconfig path for client-constructing setup funcs."""
        self._check_writable("with_kubeconfig_file")
        self._kubeconfig = path
        return self

    @property
    def kubeconfig(self) -> str:
        return self._kubeconfig

    def with_namespace(self, namespace: str) -> EnvConfig:
        self._check_writable("with_namespace")
        self._namespace = namespace
        return self

    def with_random_namespace(self) -> EnvConfig:
        return self.with_namespace(random_name("testns", 32))

    @property
    def namespace(self) -> str:
        return self._namespace

    # -- selection ---------------------------------------------------------------

    def with_feature_regex(self, regex: str) -> EnvConfig:
        self._check_writable("with_feature_regex")
        self._feature_regex = regex
        return self

    @property
    def feature_regex(self) -> str:
        return self._feature_regex

    def with_assessment_regex(self, regex: str) -> EnvConfig:
        self._check_writable("with_assessment_regex")
        self._assessment_regex = regex
        return self

    @property
    def assessment_regex(self) -> str:
        return self._assessment_regex

    def with_skip_feature_regex(self, regex: str) -> EnvConfig:
        self._check_writable("with_skip_feature_regex")
        self._skip_feature_regex = regex
        return self

    @property
    def skip_feature_regex(self) -> str:
        return self._skip_feature_regex

    def with_skip_assessment_regex(self, regex: str) -> EnvConfig:
        self._check_writable("with_skip_assessment_regex")
        self._skip_assessment_regex = regex
        return self

    @property
    def skip_assessment_regex(self) -> str:
        return self._skip_assessment_regex

    def with_labels(self, labels: Mapping[str, str]) -> EnvConfig:
        self._check_writable("with_labels")
        self._labels = _labels_from(labels)
        return self

    @property
    def labels(self) -> dict[str, str]:
        return dict(self._labels)

    def with_skip_labels(self, labels: Mapping[str, str]) -> EnvConfig:
        self._check_writable("with_skip_labels")
        self._skip_labels = _labels_from(labels)
        return self

    @property
    def skip_labels(self) -> dict[str, str]:
        return dict(self._skip_labels)

    def selection(self) -> Selection:
        """
        Compile the configured filters.

        Raises:
            SelectionError: If any regular expression is invalid
        """
        from .env.matcher import Selection

        return Selection.compile(
            feature=self._feature_regex,
            assessment=self._assessment_regex,
            labels=self._labels,
            skip_feature=self._skip_feature_regex,
            skip_assessment=self._skip_assessment_regex,
            skip_labels=self._skip_labels,
        )

    # -- run modes ---------------------------------------------------------------

    def with_parallel_test_enabled(self, enabled: bool = True) -> EnvConfig:
        self._check_writable("with_parallel_test_enabled")
        self._parallel = enabled
        return self

    @property
    def parallel_test_enabled(self) -> bool:
        return self._parallel

    def with_dry_run_mode(self, enabled: bool = True) -> EnvConfig:
        self._check_writable("with_dry_run_mode")
        self._dry_run = enabled
        return self

    @property
    def dry_run_mode(self) -> bool:
        return self._dry_run

    def with_fail_fast_mode(self, enabled: bool = True) -> EnvConfig:
        self._check_writable("with_fail_fast_mode")
        self._fail_fast = enabled
        return self

    @property
    def fail_fast(self) -> bool:
        return self._fail_fast

    def with_disable_graceful_teardown(self, disabled: bool = True) -> EnvConfig:
        self._check_writable("with_disable_graceful_teardown")
        self._disable_graceful_teardown = disabled
        return self

    @property
    def disable_graceful_teardown(self) -> bool:
        return self._disable_graceful_teardown

    # -- extension state ---------------------------------------------------------

    def with_value(self, key: str, value: Any) -> EnvConfig:
        """Store an extension value visible to all later steps."""
        self._check_writable("with_value")
        self._values[key] = value
        return self

    def value(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def values(self) -> dict[str, Any]:
        return dict(self._values)


def _labels_from(labels: Any) -> dict[str, str]:
    if labels is None:
        return {}
    if hasattr(labels, "to_dict"):
        labels = labels.to_dict()
    if not isinstance(labels, Mapping):
        raise ConfigError("labels must be a mapping", labels=labels)
    return {str(k): _label_value(v) for k, v in labels.items()}


def _label_value(value: Any) -> str:
    # YAML turns `flaky: true` into a bool; labels compare as strings
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
