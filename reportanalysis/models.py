"""Canonical report types.

Every value here is immutable and built fresh for each normalization call.
`AnalysisReport.to_dict()` renders a report back into the current analysis-job
schema, which is also what the batch tool writes to disk.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final

SCORE_MIN: Final[int] = 1
SCORE_MAX: Final[int] = 10


def _label_key(value: object) -> str:
    """Reduce a status/confidence label to lowercase letters ("❌ High" -> "high")."""
    if not isinstance(value, str):
        return ""
    return re.sub(r"[^a-z]", "", value.lower())


class Status(str, Enum):
    """Classification of a parameter against its normal range."""

    NORMAL = "Normal"
    HIGH = "High"
    LOW = "Low"

    @classmethod
    def parse(cls, value: object) -> "Status":
        """Parse a status label; anything unrecognized is Normal."""
        key = _label_key(value)
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.NORMAL


class Confidence(str, Enum):
    """Confidence attached to a future-risk prediction."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, value: object) -> "Confidence":
        """Parse a confidence label; anything unrecognized is Low."""
        key = _label_key(value)
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.LOW


@dataclass(frozen=True)
class ParameterRow:
    """One lab value from the report."""

    parameter: str
    value: str
    unit: str
    normal_range: str
    status: Status = Status.NORMAL
    report_range: str = ""
    deviation: str = ""
    note: str = ""

    @property
    def is_abnormal(self) -> bool:
        return self.status is not Status.NORMAL

    def to_dict(self) -> dict[str, str]:
        return {
            "parameter": self.parameter,
            "value": self.value,
            "unit": self.unit,
            "report_range": self.report_range,
            "normal_range": self.normal_range,
            "status": self.status.value,
            "deviation": self.deviation,
            "note": self.note,
        }


@dataclass(frozen=True)
class PredictionRow:
    """A forward-looking risk linked to abnormal parameters."""

    condition: str
    confidence: Confidence = Confidence.LOW
    linked_values: tuple[str, ...] = ()
    reason: str = ""
    proof: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": self.condition,
            "confidence": self.confidence.value,
            "linked_values": list(self.linked_values),
            "reason": self.reason,
            "proof": self.proof,
        }


@dataclass(frozen=True)
class HealthScore:
    score: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "reason": self.reason}


@dataclass(frozen=True)
class DietPlan:
    breakfast: str = ""
    lunch: str = ""
    dinner: str = ""
    snacks: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.breakfast or self.lunch or self.dinner or self.snacks)

    def to_dict(self) -> dict[str, str]:
        return {
            "breakfast": self.breakfast,
            "lunch": self.lunch,
            "dinner": self.dinner,
            "snacks": self.snacks,
        }


@dataclass(frozen=True)
class IntermediateRows:
    """Mapped rows handed from the field mapper to the derivation engine.

    `health_score` and `abnormal_findings` are None when the source schema did
    not supply them and they have to be derived.
    """

    parameters: tuple[ParameterRow, ...] = ()
    predictions: tuple[PredictionRow, ...] = ()
    final_summary: str = ""
    health_score: HealthScore | None = None
    abnormal_findings: tuple[str, ...] | None = None
    recommendations: tuple[str, ...] = ()
    diet_plan: DietPlan = field(default_factory=DietPlan)


@dataclass(frozen=True)
class AnalysisReport:
    """Canonical, display-ready analysis of one health report."""

    health_score: HealthScore
    parameters: tuple[ParameterRow, ...] = ()
    abnormal_findings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    diet_plan: DietPlan = field(default_factory=DietPlan)
    future_predictions: tuple[PredictionRow, ...] = ()
    final_summary: str = ""
    is_legacy: bool = False

    @property
    def abnormal_count(self) -> int:
        return sum(1 for row in self.parameters if row.is_abnormal)

    @property
    def is_empty(self) -> bool:
        """True when there is no parameter data to show (re-analysis candidate)."""
        return not self.parameters

    def to_dict(self) -> dict[str, Any]:
        """Render in the current analysis-job schema."""
        return {
            "health_score": self.health_score.to_dict(),
            "parameters_table": [row.to_dict() for row in self.parameters],
            "abnormal_findings": list(self.abnormal_findings),
            "recommendations": list(self.recommendations),
            "diet_plan": self.diet_plan.to_dict(),
            "future_predictions": [row.to_dict() for row in self.future_predictions],
            "final_summary": self.final_summary,
        }
