"""
Table-driven features: one assessment per row.

Example:
    feat = Table(
        [
            TableRow("small payload", check_small),
            TableRow("large payload", check_large, labels={"size": "large"}),
        ]
    ).build("payloads", "upload limits").feature()
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .builder import FeatureBuilder
from .feature import StepFunc


@dataclass(frozen=True)
class TableRow:
    name: str
    assessment: StepFunc
    description: str = ""
    labels: Mapping[str, str] = field(default_factory=dict)


class Table(list[TableRow]):
    """A list of rows that builds into a feature."""

    def build(self, name: str = "Table", description: str = "") -> FeatureBuilder:
        """
        Return a builder with one assessment per row, in row order.

        Rows without a name are called ``Row <index>``.
        """
        builder = FeatureBuilder(name).with_description(description)
        for i, row in enumerate(self):
            builder.assess(row.name or f"Row {i}", row.assessment, row.labels)
        return builder
