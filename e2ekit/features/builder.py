"""
Fluent builder for features.

Example:
    feat = (
        features.new("network policies")
        .with_label("area", "net")
        .setup(create_namespace)
        .assess("deny all blocks ingress", check_deny_all)
        .assess("allow list admits peers", check_allow_list)
        .teardown(delete_namespace)
        .feature()
    )
"""

from __future__ import annotations

from collections.abc import Mapping

from .feature import Feature, Level, Step, StepFunc


class FeatureBuilder:
    """
    Accumulates labels and steps; ``feature()`` snapshots them.

    Every method appends to the in-progress feature and returns the same
    builder. Each ``feature()`` call returns an independent immutable
    Feature, so later builder calls never leak into earlier snapshots.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._description = ""
        self._labels: dict[str, str] = {}
        self._steps: list[Step] = []

    @property
    def name(self) -> str:
        return self._name

    def with_label(self, key: str, value: str) -> FeatureBuilder:
        """Tag the feature; a repeated key keeps the last value."""
        self._labels[key] = value
        return self

    def with_description(self, description: str) -> FeatureBuilder:
        self._description = description
        return self

    def setup(self, fn: StepFunc) -> FeatureBuilder:
        n = sum(1 for s in self._steps if s.level is Level.SETUP) + 1
        self._steps.append(Step(f"setup-{n}", Level.SETUP, fn))
        return self

    def assess(
        self, name: str, fn: StepFunc, labels: Mapping[str, str] | None = None
    ) -> FeatureBuilder:
        self._steps.append(Step(name, Level.ASSESS, fn, labels or {}))
        return self

    def teardown(self, fn: StepFunc) -> FeatureBuilder:
        n = sum(1 for s in self._steps if s.level is Level.TEARDOWN) + 1
        self._steps.append(Step(f"teardown-{n}", Level.TEARDOWN, fn))
        return self

    def feature(self) -> Feature:
        return Feature(
            name=self._name,
            labels=dict(self._labels),
            steps=tuple(self._steps),
            description=self._description,
        )


def new(name: str) -> FeatureBuilder:
    """Start building a feature called ``name``."""
    return FeatureBuilder(name)
