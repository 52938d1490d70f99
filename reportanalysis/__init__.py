"""Normalize report-analysis job output into one canonical report shape."""

from reportanalysis.derive import DEFAULT_POLICY, ScoringPolicy
from reportanalysis.detect import Variant, detect
from reportanalysis.export import export_csv
from reportanalysis.models import (
    AnalysisReport,
    Confidence,
    DietPlan,
    HealthScore,
    ParameterRow,
    PredictionRow,
    Status,
)
from reportanalysis.normalize import (
    non_medical_message,
    normalize_analysis,
    normalize_analysis_text,
    parse_analysis_text,
)

__all__ = [
    "AnalysisReport",
    "Confidence",
    "DEFAULT_POLICY",
    "DietPlan",
    "HealthScore",
    "ParameterRow",
    "PredictionRow",
    "ScoringPolicy",
    "Status",
    "Variant",
    "detect",
    "export_csv",
    "non_medical_message",
    "normalize_analysis",
    "normalize_analysis_text",
    "parse_analysis_text",
]
