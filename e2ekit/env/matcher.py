"""
Selection filters deciding which features and assessments run.

``should_run`` is a pure predicate: given a unit's name and labels and a
compiled ``Selection`` it always returns the same answer. Skip filters are
checked first and win over any accept filter.

Example:
    sel = Selection.compile(feature="^net", skip_labels={"flaky": "true"})
    should_run("net policy", {"flaky": "true"}, sel, Level.FEATURE)  # False
"""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from re import Pattern
from types import MappingProxyType

from ..exceptions import SelectionError
from ..features import Feature, Step
from ..regex_utils import (
    RegexComplexityError,
    RegexTimeoutError,
    safe_compile,
    safe_search,
)


class MatchLevel(enum.Enum):
    """Which name filters apply to a unit."""

    FEATURE = "feature"
    ASSESSMENT = "assessment"


def _frozen(labels: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(labels or {}))


@dataclass(frozen=True)
class Selection:
    """Compiled selection filters for one run."""

    feature: Pattern[str] | None = None
    assessment: Pattern[str] | None = None
    labels: Mapping[str, str] = field(default_factory=lambda: _frozen(None))
    skip_feature: Pattern[str] | None = None
    skip_assessment: Pattern[str] | None = None
    skip_labels: Mapping[str, str] = field(default_factory=lambda: _frozen(None))

    @classmethod
    def compile(
        cls,
        feature: str = "",
        assessment: str = "",
        labels: Mapping[str, str] | None = None,
        skip_feature: str = "",
        skip_assessment: str = "",
        skip_labels: Mapping[str, str] | None = None,
    ) -> Selection:
        """
        Compile filter expressions; empty strings mean "not configured".

        Raises:
            SelectionError: If a regular expression is invalid or unsafe
        """
        return cls(
            feature=_compile("feature", feature),
            assessment=_compile("assessment", assessment),
            labels=_frozen(labels),
            skip_feature=_compile("skip_feature", skip_feature),
            skip_assessment=_compile("skip_assessment", skip_assessment),
            skip_labels=_frozen(skip_labels),
        )

    @property
    def empty(self) -> bool:
        return not any(
            (
                self.feature,
                self.assessment,
                self.labels,
                self.skip_feature,
                self.skip_assessment,
                self.skip_labels,
            )
        )


def _compile(flag: str, expr: str) -> Pattern[str] | None:
    if not expr:
        return None
    try:
        return safe_compile(expr)
    except (re.error, RegexComplexityError, RegexTimeoutError) as e:
        raise SelectionError(
            "invalid selection filter", flag=flag, pattern=expr, reason=e
        ) from e


def labels_match(filter_labels: Mapping[str, str], labels: Mapping[str, str]) -> bool:
    """True if ``labels`` carries any of the filter's key=value pairs."""
    return any(labels.get(k) == v for k, v in filter_labels.items())


def should_run(
    name: str,
    labels: Mapping[str, str],
    selection: Selection,
    level: MatchLevel,
) -> bool:
    """Decide whether a unit with ``name`` and ``labels`` is selected."""
    if level is MatchLevel.FEATURE:
        skip_name, accept_name = selection.skip_feature, selection.feature
    else:
        skip_name, accept_name = selection.skip_assessment, selection.assessment

    if skip_name is not None and safe_search(skip_name, name):
        return False
    if selection.skip_labels and labels_match(selection.skip_labels, labels):
        return False

    if accept_name is not None and not safe_search(accept_name, name):
        return False
    if selection.labels and not labels_match(selection.labels, labels):
        return False
    return True


def should_run_feature(feature: Feature, selection: Selection) -> bool:
    return should_run(feature.name, feature.labels, selection, MatchLevel.FEATURE)


def should_run_assessment(feature: Feature, step: Step, selection: Selection) -> bool:
    """Match an assessment by its name and its effective labels."""
    return should_run(
        step.name,
        feature.effective_labels(step),
        selection,
        MatchLevel.ASSESSMENT,
    )
