"""Entry points that turn raw analysis job output into an AnalysisReport.

`normalize_analysis` is total: whatever it is given, it returns a report.
`parse_analysis_text` is the only function here that raises, for callers that
want to surface undecodable job output instead of rendering an empty report.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping

from reportanalysis.derive import DEFAULT_POLICY, ScoringPolicy, compute_health_score, derive
from reportanalysis.detect import Variant, detect
from reportanalysis.exceptions import AnalysisParseError
from reportanalysis.mapper import map_rows, to_text
from reportanalysis.models import AnalysisReport

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?[ \t]*\r?\n?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove the ```json / ``` markdown fences models wrap their JSON in."""
    return _CODE_FENCE.sub("", text).strip()


def parse_analysis_text(text: str, source: str | None = None) -> object:
    """Decode analysis job output (JSON, possibly fenced) into a JSON value.

    Raises:
        AnalysisParseError: If the text is not valid JSON once fences are removed.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise AnalysisParseError("Analysis output is empty", source=source)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Failed to parse analysis output: {e}", source=source) from e


def _empty_report(policy: ScoringPolicy) -> AnalysisReport:
    return AnalysisReport(health_score=compute_health_score((), policy))


def normalize_analysis(raw: object, policy: ScoringPolicy = DEFAULT_POLICY) -> AnalysisReport:
    """Normalize any analysis JSON value into the canonical report.

    Only the legacy variants produce `is_legacy=True`; empty and unrecognized
    input yields the neutral report with no rows.
    """
    try:
        variant = detect(raw)
        if variant is Variant.UNRECOGNIZED:
            logger.warning("Unrecognized analysis shape (%s); using empty report", type(raw).__name__)
        rows = map_rows(variant, raw)
        return derive(rows, is_legacy=variant.is_legacy, policy=policy)
    except Exception:
        logger.exception("Analysis normalization failed; using empty report")
        return _empty_report(policy)


def normalize_analysis_text(
    text: str, policy: ScoringPolicy = DEFAULT_POLICY, source: str | None = None
) -> AnalysisReport:
    """Decode and normalize raw model text; undecodable text gives the empty report."""
    try:
        raw = parse_analysis_text(text, source=source)
    except AnalysisParseError as e:
        logger.warning("%s%s", f"{source}: " if source else "", e)
        raw = None
    return normalize_analysis(raw, policy)


def non_medical_message(raw: object) -> str | None:
    """Message stored by the analysis job for uploads that are not medical."""
    if isinstance(raw, Mapping) and raw.get("is_medical") is False:
        return to_text(raw.get("message")) or None
    return None
