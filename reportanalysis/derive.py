"""Derive the fields legacy analysis schemas never carried.

The score heuristic is intentionally simple: start at the ceiling, lose one
point per abnormal parameter, never drop below the floor. With no parameter
data at all the neutral score is used.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from reportanalysis.models import (
    SCORE_MAX,
    SCORE_MIN,
    AnalysisReport,
    HealthScore,
    IntermediateRows,
    ParameterRow,
)

LIMITED_DATA_REASON: Final = "Limited data available. Consider re-running analysis."
ALL_NORMAL_REASON: Final = "All parameters within normal limits."
ABNORMAL_REASON_TEMPLATE: Final = "{abnormal}/{total} parameters outside normal range."


@dataclass(frozen=True)
class ScoringPolicy:
    """Constants of the derived health score."""

    floor: int = 4
    ceiling: int = SCORE_MAX
    neutral: int = 7

    def __post_init__(self) -> None:
        for name in ("floor", "ceiling", "neutral"):
            value = getattr(self, name)
            if not SCORE_MIN <= value <= SCORE_MAX:
                raise ValueError(f"{name} must be between {SCORE_MIN} and {SCORE_MAX}, got {value}")
        if self.floor > self.ceiling:
            raise ValueError(f"floor ({self.floor}) must not exceed ceiling ({self.ceiling})")


DEFAULT_POLICY: Final = ScoringPolicy()


def compute_health_score(
    parameters: Sequence[ParameterRow], policy: ScoringPolicy = DEFAULT_POLICY
) -> HealthScore:
    total = len(parameters)
    abnormal = sum(1 for row in parameters if row.is_abnormal)

    if total == 0:
        return HealthScore(score=policy.neutral, reason=LIMITED_DATA_REASON)

    score = max(policy.floor, policy.ceiling - abnormal)
    if abnormal == 0:
        reason = ALL_NORMAL_REASON
    else:
        reason = ABNORMAL_REASON_TEMPLATE.format(abnormal=abnormal, total=total)
    return HealthScore(score=score, reason=reason)


def build_abnormal_findings(parameters: Sequence[ParameterRow]) -> tuple[str, ...]:
    """One "{parameter}: {note or status}" line per non-Normal row, in order."""
    return tuple(
        f"{row.parameter}: {row.note or row.status.value}"
        for row in parameters
        if row.is_abnormal
    )


def derive(
    rows: IntermediateRows, is_legacy: bool, policy: ScoringPolicy = DEFAULT_POLICY
) -> AnalysisReport:
    """Build the final report, passing through whatever the source supplied.

    Legacy rows never carry recommendations or a diet plan, so those stay
    empty for derived reports.
    """
    health_score = rows.health_score
    if health_score is None:
        health_score = compute_health_score(rows.parameters, policy)

    abnormal_findings = rows.abnormal_findings
    if abnormal_findings is None:
        abnormal_findings = build_abnormal_findings(rows.parameters)

    return AnalysisReport(
        health_score=health_score,
        parameters=rows.parameters,
        abnormal_findings=abnormal_findings,
        recommendations=rows.recommendations,
        diet_plan=rows.diet_plan,
        future_predictions=rows.predictions,
        final_summary=rows.final_summary,
        is_legacy=is_legacy,
    )
