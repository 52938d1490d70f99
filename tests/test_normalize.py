"""Tests for end-to-end analysis normalization."""

import json

import pytest

import reportanalysis.normalize as normalize_mod
from reportanalysis.derive import LIMITED_DATA_REASON, ScoringPolicy
from reportanalysis.exceptions import AnalysisParseError
from reportanalysis.models import AnalysisReport, HealthScore, Status
from reportanalysis.normalize import (
    non_medical_message,
    normalize_analysis,
    normalize_analysis_text,
    parse_analysis_text,
    strip_code_fences,
)


CURRENT_ANALYSIS = {
    "health_score": {"score": 8, "reason": "Good"},
    "parameters_table": [
        {
            "parameter": "Hemoglobin",
            "value": "13.1",
            "unit": "g/dL",
            "report_range": "13.5-17.5",
            "normal_range": "13.5-17.5",
            "status": "Low",
            "deviation": "-3%",
            "note": "Slightly low",
        },
        {"parameter": "Glucose", "value": "92", "unit": "mg/dL", "normal_range": "70-99", "status": "Normal"},
    ],
    "abnormal_findings": ["Hemoglobin is slightly low, which may cause tiredness."],
    "recommendations": ["Eat iron-rich foods", "Recheck in 3 months"],
    "diet_plan": {
        "breakfast": "Oats with dates",
        "lunch": "Spinach dal and rice",
        "dinner": "Vegetable soup",
        "snacks": "Nuts",
    },
    "future_predictions": [
        {
            "condition": "Iron deficiency anemia",
            "confidence": "Low",
            "linked_values": ["Hemoglobin"],
            "reason": "Hemoglobin below range",
            "proof": "WHO anemia guidelines",
        }
    ],
    "final_summary": "Your hemoglobin is slightly low. Overall health score: 8/10.",
}


# ---------------------------------------------------------------------------
# Concrete scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    """Reference inputs and their expected reports."""

    def test_empty_legacy_array(self):
        report = normalize_analysis([])
        assert report.health_score == HealthScore(7, LIMITED_DATA_REASON)
        assert report.parameters == ()
        assert report.abnormal_findings == ()
        assert report.is_legacy is True

    def test_wrapped_glucose(self):
        raw = {
            "analysis_table": [
                {
                    "parameter": "Glucose",
                    "value": 110,
                    "unit": "mg/dL",
                    "normal_range": "70-99",
                    "status": "High",
                    "note": "Elevated",
                }
            ]
        }
        report = normalize_analysis(raw)
        assert len(report.parameters) == 1
        assert report.parameters[0].value == "110"
        assert report.health_score == HealthScore(9, "1/1 parameters outside normal range.")
        assert report.abnormal_findings == ("Glucose: Elevated",)
        assert report.is_legacy is True

    def test_current_passthrough(self):
        report = normalize_analysis(CURRENT_ANALYSIS)
        assert report.health_score == HealthScore(8, "Good")
        assert report.is_legacy is False
        assert report.abnormal_findings == ("Hemoglobin is slightly low, which may cause tiredness.",)
        assert report.recommendations == ("Eat iron-rich foods", "Recheck in 3 months")
        assert report.diet_plan.lunch == "Spinach dal and rice"
        assert report.future_predictions[0].proof == "WHO anemia guidelines"
        assert report.parameters[0].status is Status.LOW
        assert report.final_summary.startswith("Your hemoglobin")

    def test_note_falls_back_to_status(self):
        raw = {
            "analysis_table": [
                {"parameter": "Hb", "value": "14", "status": "Normal"},
                {"parameter": "WBC", "value": "15000", "status": "High", "note": ""},
            ]
        }
        report = normalize_analysis(raw)
        assert report.health_score.score == 9
        assert report.abnormal_findings == ("WBC: High",)

    def test_null_input(self):
        report = normalize_analysis(None)
        assert report.health_score == HealthScore(7, LIMITED_DATA_REASON)
        assert report.parameters == ()
        assert report.abnormal_findings == ()
        assert report.recommendations == ()
        assert report.future_predictions == ()
        assert report.final_summary == ""
        assert report.is_legacy is False


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


MALFORMED_INPUTS = [
    None,
    {},
    [],
    "plain text",
    0,
    -1.5,
    True,
    [None, 1, "x", [], {}],
    {"analysis_table": "not a list", "prediction_table": 5},
    {"analysis_table": [{"parameter": {"nested": [1, 2]}, "value": [1, {"a": None}]}]},
    {"health_score": "excellent", "parameters_table": {"parameter": "Hb"}},
    {"health_score": {"score": None}, "parameters_table": None, "diet_plan": [], "recommendations": 3},
    [{"parameter": "Hb", "status": None, "note": None, "unit": 12.5}],
    {"is_medical": False, "message": "Not a lab report."},
    [[[[[[[]]]]]]],
]


class TestProperties:
    """Invariants that hold for every input."""

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS)
    def test_totality(self, raw):
        report = normalize_analysis(raw)
        assert isinstance(report, AnalysisReport)
        assert 1 <= report.health_score.score <= 10
        assert isinstance(report.health_score.reason, str)
        for row in report.parameters:
            assert row.parameter
            assert isinstance(row.status, Status)

    def test_self_referencing_value(self):
        value: dict = {}
        value["self"] = value
        report = normalize_analysis([{"parameter": "Loop", "value": value}])
        assert report.parameters[0].parameter == "Loop"

    def test_deeply_nested_value_keeps_other_rows(self):
        deep: list = []
        for _ in range(10000):
            deep = [deep]
        report = normalize_analysis([{"parameter": "Deep", "value": deep}, {"parameter": "Hb", "value": "14"}])
        assert [row.parameter for row in report.parameters] == ["Deep", "Hb"]
        assert report.parameters[0].value == ""
        assert report.parameters[1].value == "14"

    def test_stage_failure_yields_empty_report(self, monkeypatch):
        def boom(variant, raw):
            raise RuntimeError("mapper exploded")

        monkeypatch.setattr(normalize_mod, "map_rows", boom)
        report = normalize_analysis(CURRENT_ANALYSIS)
        assert report.parameters == ()
        assert report.health_score == HealthScore(7, LIMITED_DATA_REASON)

    def test_idempotent_on_canonical_input(self):
        first = normalize_analysis(CURRENT_ANALYSIS)
        second = normalize_analysis(first.to_dict())
        assert second == first

    def test_legacy_report_round_trips_as_current(self):
        """Re-feeding a derived report keeps everything but the legacy flag."""
        legacy = normalize_analysis([{"parameter": "LDL", "value": 170, "status": "High"}])
        again = normalize_analysis(legacy.to_dict())
        assert again.is_legacy is False
        assert again.health_score == legacy.health_score
        assert again.parameters == legacy.parameters
        assert again.abnormal_findings == legacy.abnormal_findings

    def test_findings_correspond_to_abnormal_rows(self):
        statuses = ["High", "Normal", "Low", "Normal", "Low", "bogus"]
        raw = [{"parameter": f"P{i}", "status": s} for i, s in enumerate(statuses)]
        report = normalize_analysis(raw)
        assert len(report.abnormal_findings) == report.abnormal_count == 3
        assert report.abnormal_findings == ("P0: High", "P2: Low", "P4: Low")

    def test_custom_policy(self):
        report = normalize_analysis(None, policy=ScoringPolicy(neutral=5))
        assert report.health_score.score == 5

    def test_input_not_mutated(self):
        raw = json.loads(json.dumps(CURRENT_ANALYSIS))
        normalize_analysis(raw)
        assert raw == CURRENT_ANALYSIS


# ---------------------------------------------------------------------------
# Model text handling
# ---------------------------------------------------------------------------


class TestTextInput:
    """Tests for decoding raw model output."""

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('```\n[]\n```\n') == "[]"
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_parse_fenced_json(self):
        text = "```json\n" + json.dumps(CURRENT_ANALYSIS) + "\n```"
        assert parse_analysis_text(text) == CURRENT_ANALYSIS

    def test_parse_invalid_raises(self):
        with pytest.raises(AnalysisParseError, match="Failed to parse") as exc_info:
            parse_analysis_text("Here is your analysis: ...", source="job-42")
        assert exc_info.value.source == "job-42"

    def test_parse_empty_raises(self):
        with pytest.raises(AnalysisParseError, match="empty"):
            parse_analysis_text("```json\n```")

    def test_normalize_text(self):
        report = normalize_analysis_text("```json\n" + json.dumps(CURRENT_ANALYSIS) + "\n```")
        assert report.health_score.score == 8

    def test_normalize_undecodable_text_is_empty_report(self):
        report = normalize_analysis_text("not json at all")
        assert report.parameters == ()
        assert report.health_score == HealthScore(7, LIMITED_DATA_REASON)
        assert report.is_legacy is False


class TestNonMedicalMessage:
    """Tests for non_medical_message."""

    def test_message_returned(self):
        raw = {"is_medical": False, "message": "This file doesn't appear to contain medical data."}
        assert non_medical_message(raw) == "This file doesn't appear to contain medical data."

    def test_medical_or_other_shapes(self):
        assert non_medical_message(CURRENT_ANALYSIS) is None
        assert non_medical_message({"is_medical": True, "message": "x"}) is None
        assert non_medical_message([]) is None
        assert non_medical_message(None) is None

    def test_non_medical_report_is_neutral(self):
        report = normalize_analysis({"is_medical": False, "message": "Not medical"})
        assert report.parameters == ()
        assert report.health_score.score == 7
