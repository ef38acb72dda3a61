"""
Row accounting for pipeline stages.
Every stage reports how many records entered, how many survived and why the rest were dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd


@dataclass(frozen=True)
class StageSummary:
    stage_name: str
    rows_in: int
    rows_out: int
    rejected_by_reason: dict[str, int] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def rows_dropped(self) -> int:
        return self.rows_in - self.rows_out

    @property
    def survival_rate(self) -> float:
        if self.rows_in == 0:
            return 0.0
        return self.rows_out / self.rows_in

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage_name": self.stage_name,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "rows_dropped": self.rows_dropped,
            "survival_rate": round(self.survival_rate, 4),
            "rejected_by_reason": dict(self.rejected_by_reason),
            "details": dict(self.details),
        }


def count_reasons(outcomes: pd.Series) -> dict[str, int]:
    """Count non-null rejection reasons, ordered by reason name."""

    counts = outcomes.dropna().value_counts()
    return {str(reason): int(counts[reason]) for reason in sorted(counts.index)}
