"""
Immutable Feature and Step values.

A Feature is a named, labeled, ordered group of setup, assessment and
teardown steps. Features are produced by ``FeatureBuilder.feature()`` and
never change afterwards: labels are exposed through a read-only mapping and
steps are stored in a tuple.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..context import Context
    from ..env.tester import T
    from ..envconf import EnvConfig

# fn(ctx, t, cfg) -> ctx; returning None keeps the incoming context
StepFunc = Callable[["Context", "T", "EnvConfig"], "Context | None"]

Labels = Mapping[str, str]


def _freeze_labels(labels: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(labels or {}))


class Level(enum.Enum):
    """Where a step runs within its feature."""

    SETUP = "setup"
    ASSESS = "assess"
    TEARDOWN = "teardown"


@dataclass(frozen=True)
class Step:
    """One named unit of work within a feature."""

    name: str
    level: Level
    func: StepFunc
    labels: Labels = field(default_factory=lambda: _freeze_labels(None))

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _freeze_labels(self.labels))


@dataclass(frozen=True)
class Feature:
    """A finalized, immutable feature."""

    name: str
    labels: Labels = field(default_factory=lambda: _freeze_labels(None))
    steps: tuple[Step, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _freeze_labels(self.labels))
        object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def setups(self) -> tuple[Step, ...]:
        return steps_by_level(self.steps, Level.SETUP)

    @property
    def assessments(self) -> tuple[Step, ...]:
        return steps_by_level(self.steps, Level.ASSESS)

    @property
    def teardowns(self) -> tuple[Step, ...]:
        return steps_by_level(self.steps, Level.TEARDOWN)

    def effective_labels(self, step: Step) -> dict[str, str]:
        """The feature's labels overlaid with the step's own labels."""
        merged = dict(self.labels)
        merged.update(step.labels)
        return merged


def steps_by_level(steps: Iterable[Step], level: Level) -> tuple[Step, ...]:
    """Return the steps at ``level``, preserving registration order."""
    return tuple(s for s in steps if s.level is level)


def describe(feature: Feature) -> dict[str, Any]:
    """Summarize a feature for logging."""
    return {
        "feature": feature.name,
        "labels": ",".join(f"{k}={v}" for k, v in sorted(feature.labels.items())),
        "setups": len(feature.setups),
        "assessments": len(feature.assessments),
        "teardowns": len(feature.teardowns),
    }
