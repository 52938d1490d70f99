"""CSV export of the report tables.

Headers use the analysis job's field names so the files line up with the raw
JSON the report came from.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from typing import Final

from reportanalysis.exceptions import ExportError
from reportanalysis.models import AnalysisReport, ParameterRow, PredictionRow

PARAMETER_COLUMNS: Final[list[str]] = [
    "parameter",
    "value",
    "unit",
    "report_range",
    "normal_range",
    "status",
    "deviation",
    "note",
]
PREDICTION_COLUMNS: Final[list[str]] = [
    "condition",
    "confidence",
    "linked_values",
    "reason",
    "proof",
]
TABLES: Final[tuple[str, ...]] = ("analysis", "prediction")


def _write(header: list[str], rows: Iterable[list[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return output.getvalue()


def parameters_to_csv(rows: Iterable[ParameterRow]) -> str:
    return _write(
        PARAMETER_COLUMNS,
        ([row.to_dict()[col] for col in PARAMETER_COLUMNS] for row in rows),
    )


def predictions_to_csv(rows: Iterable[PredictionRow]) -> str:
    return _write(
        PREDICTION_COLUMNS,
        (
            [
                row.condition,
                row.confidence.value,
                "; ".join(row.linked_values),
                row.reason,
                row.proof,
            ]
            for row in rows
        ),
    )


def export_csv(report: AnalysisReport, table: str = "analysis") -> str:
    """Export one of the report tables ("analysis" or "prediction") as CSV text."""
    if table == "analysis":
        return parameters_to_csv(report.parameters)
    if table == "prediction":
        return predictions_to_csv(report.future_predictions)
    raise ExportError(f"Unknown table '{table}', must be one of {list(TABLES)}", table=table)
