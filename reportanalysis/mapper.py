"""Map each analysis variant onto the common intermediate rows.

Field names follow the analysis job's JSON (`normal_range`, `report_range`,
`reason_one_line`, ...). Missing fields get defaults; malformed rows are
skipped. Nothing in here raises on bad input.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping
from decimal import Decimal

from reportanalysis.detect import Variant
from reportanalysis.models import (
    SCORE_MAX,
    SCORE_MIN,
    Confidence,
    DietPlan,
    HealthScore,
    IntermediateRows,
    ParameterRow,
    PredictionRow,
    Status,
)

logger = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")
_EXPONENT_PADDING = re.compile(r"e([+-])0*(\d)")


# --------------------------------------------------------------------------------------
# Coercion helpers
# --------------------------------------------------------------------------------------


def to_text(value: object) -> str:
    """Coerce a JSON value to display text.

    None -> "", booleans -> "true"/"false", integral floats lose their ".0",
    lists are comma-joined and objects are JSON-encoded. Floats are written
    in plain decimal between 1e-6 and 1e21 (0.00001, not 1e-05) and with an
    unpadded exponent outside it. A value nested too deeply to walk becomes "".
    """
    try:
        return _to_text(value)
    except RecursionError:
        logger.debug("Value nested too deeply to render; using empty text")
        return ""


def _float_text(value: float) -> str:
    if not math.isfinite(value):
        return repr(value)
    if value.is_integer():
        return str(int(value))
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(repr(value)), "f")
    return _EXPONENT_PADDING.sub(r"e\1\2", repr(value))


def _to_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _float_text(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(t for t in (_to_text(v) for v in value) if t)
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def to_text_list(value: object) -> tuple[str, ...]:
    """Coerce a JSON value to a tuple of non-empty strings."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        items = [to_text(v) for v in value]
    else:
        items = [to_text(value)]
    return tuple(item for item in items if item.strip())


def _linked_values(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return to_text_list(value)


def _first_present(row: Mapping, *keys: str) -> object:
    """Value of the first key present with a non-None value."""
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


def _table(raw: Mapping, key: str) -> list:
    table = raw.get(key)
    if isinstance(table, (list, tuple)):
        return list(table)
    if table is not None:
        logger.debug("Ignoring %s: expected a list, got %s", key, type(table).__name__)
    return []


# --------------------------------------------------------------------------------------
# Row mappers
# --------------------------------------------------------------------------------------


def map_parameter(row: object) -> ParameterRow | None:
    """Map one parameter-table row; None if the row is unusable."""
    if not isinstance(row, Mapping):
        logger.debug("Skipping parameter row: expected dict, got %s", type(row).__name__)
        return None
    name = to_text(row.get("parameter")).strip()
    if not name:
        logger.debug("Skipping parameter row without a name")
        return None
    return ParameterRow(
        parameter=name,
        value=to_text(row.get("value")),
        unit=to_text(row.get("unit")),
        normal_range=to_text(row.get("normal_range")),
        status=Status.parse(row.get("status")),
        report_range=to_text(row.get("report_range")),
        deviation=to_text(row.get("deviation")),
        note=to_text(row.get("note")),
    )


def map_prediction(row: object) -> PredictionRow | None:
    """Map one prediction-table row, accepting both old and new field names."""
    if not isinstance(row, Mapping):
        logger.debug("Skipping prediction row: expected dict, got %s", type(row).__name__)
        return None
    return PredictionRow(
        condition=to_text(row.get("condition")),
        confidence=Confidence.parse(row.get("confidence")),
        linked_values=_linked_values(row.get("linked_values")),
        reason=to_text(_first_present(row, "reason_one_line", "reason")),
        proof=to_text(_first_present(row, "proof_citation", "proof")),
    )


def map_health_score(value: object) -> HealthScore | None:
    """Read a supplied health score; None when absent or not numeric.

    Accepts `{"score": 8, "reason": "..."}`, a bare number, or numeric text
    such as "8/10". The score is rounded and clamped to 1..10.
    """
    if isinstance(value, Mapping):
        score_raw, reason = value.get("score"), to_text(value.get("reason"))
    else:
        score_raw, reason = value, ""

    if isinstance(score_raw, bool):
        return None
    if isinstance(score_raw, (int, float)):
        number = float(score_raw)
    elif isinstance(score_raw, str) and (match := _LEADING_NUMBER.match(score_raw)):
        number = float(match.group(1))
    else:
        return None
    if not math.isfinite(number):
        return None

    score = max(SCORE_MIN, min(SCORE_MAX, int(round(number))))
    return HealthScore(score=score, reason=reason)


def map_diet_plan(value: object) -> DietPlan:
    if not isinstance(value, Mapping):
        return DietPlan()
    return DietPlan(
        breakfast=to_text(value.get("breakfast")),
        lunch=to_text(value.get("lunch")),
        dinner=to_text(value.get("dinner")),
        snacks=to_text(value.get("snacks")),
    )


def _parameters(rows: list) -> tuple[ParameterRow, ...]:
    return tuple(p for p in (map_parameter(r) for r in rows) if p is not None)


def _predictions(rows: list) -> tuple[PredictionRow, ...]:
    return tuple(p for p in (map_prediction(r) for r in rows) if p is not None)


# --------------------------------------------------------------------------------------
# Variant dispatch
# --------------------------------------------------------------------------------------


def map_rows(variant: Variant, raw: object) -> IntermediateRows:
    """Extract intermediate rows from `raw` according to its variant."""
    if variant is Variant.CURRENT and isinstance(raw, Mapping):
        findings = raw.get("abnormal_findings")
        return IntermediateRows(
            parameters=_parameters(_table(raw, "parameters_table")),
            predictions=_predictions(_table(raw, "future_predictions")),
            final_summary=to_text(raw.get("final_summary")),
            health_score=map_health_score(raw.get("health_score")),
            abnormal_findings=None if findings is None else to_text_list(findings),
            recommendations=to_text_list(raw.get("recommendations")),
            diet_plan=map_diet_plan(raw.get("diet_plan")),
        )

    if variant is Variant.LEGACY_ARRAY and isinstance(raw, (list, tuple)):
        return IntermediateRows(parameters=_parameters(list(raw)))

    if variant is Variant.LEGACY_WRAPPED and isinstance(raw, Mapping):
        return IntermediateRows(
            parameters=_parameters(_table(raw, "analysis_table")),
            predictions=_predictions(_table(raw, "prediction_table")),
        )

    return IntermediateRows()
