"""Quality validation services."""

from ecadflow.core.services.quality.thresholds import (
    DEFAULT_BANDS,
    BandOverride,
    PlausibilityBand,
    merge_band_overrides,
)
from ecadflow.core.services.quality.validator import (
    AVG_ABOVE_MAX,
    MIN_ABOVE_AVG,
    MIN_ABOVE_MAX,
    TEMPERATURE_JUMP,
    QualityValidator,
    ValidationInconsistency,
    ValidationOutcome,
)

__all__ = [
    "AVG_ABOVE_MAX",
    "DEFAULT_BANDS",
    "MIN_ABOVE_AVG",
    "MIN_ABOVE_MAX",
    "TEMPERATURE_JUMP",
    "BandOverride",
    "PlausibilityBand",
    "QualityValidator",
    "ValidationInconsistency",
    "ValidationOutcome",
    "merge_band_overrides",
]
