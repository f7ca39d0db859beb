"""Feature and assessment model plus the fluent builder."""

from .builder import FeatureBuilder, new
from .feature import Feature, Labels, Level, Step, StepFunc, describe, steps_by_level
from .table import Table, TableRow

__all__ = [
    "Feature",
    "FeatureBuilder",
    "Labels",
    "Level",
    "Step",
    "StepFunc",
    "Table",
    "TableRow",
    "describe",
    "new",
    "steps_by_level",
]
