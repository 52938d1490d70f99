"""Classify raw analysis JSON into one of the known schema variants."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum

logger = logging.getLogger(__name__)


class Variant(Enum):
    """Shapes the analysis job output has taken over time."""

    CURRENT = "current"  # {health_score, parameters_table, ...}
    LEGACY_ARRAY = "legacy_array"  # [row, row, ...]
    LEGACY_WRAPPED = "legacy_wrapped"  # {analysis_table, prediction_table?}
    EMPTY = "empty"
    UNRECOGNIZED = "unrecognized"

    @property
    def is_legacy(self) -> bool:
        return self in (Variant.LEGACY_ARRAY, Variant.LEGACY_WRAPPED)


def detect(raw: object) -> Variant:
    """Return the variant of `raw`.

    Checks are structural key-presence tests applied in a fixed order, so any
    value maps to exactly one variant.
    """
    if isinstance(raw, Mapping) and "health_score" in raw and "parameters_table" in raw:
        variant = Variant.CURRENT
    elif isinstance(raw, (list, tuple)):
        variant = Variant.LEGACY_ARRAY
    elif isinstance(raw, Mapping) and "analysis_table" in raw:
        variant = Variant.LEGACY_WRAPPED
    elif raw is None:
        variant = Variant.EMPTY
    else:
        variant = Variant.UNRECOGNIZED

    logger.debug("Detected analysis variant: %s", variant.value)
    return variant
