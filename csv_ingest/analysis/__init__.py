# ==============================================
# ANALYSIS & CLASSIFICATION
# ==============================================
#
# This package decides which storage path an upload takes and
# maps specialized files onto their fixed schema.
#
# Modules:
# --------
# - decision.py           → ColumnType, IngestionMode, thresholds, results
# - field_mapper.py       → Alias table + SpecializedFieldMapper
# - record_classifier.py  → Header heuristic: specialized vs generic
#
# ==============================================

from .decision import (
    ClassificationResult,
    ClassifierThresholds,
    ColumnType,
    IngestionMode,
)
from .field_mapper import (
    SOMATOMETRIA_FIELD_ALIASES,
    SOMATOMETRIA_FIELDS,
    SOMATOMETRIA_REFERENCE_FRAGMENTS,
    SOMATOMETRIA_SCHEMA_NAME,
    SpecializedFieldMapper,
    bidirectional_match,
)
from .record_classifier import RecordClassifier

__all__ = [
    "ClassificationResult",
    "ClassifierThresholds",
    "ColumnType",
    "IngestionMode",
    "SOMATOMETRIA_FIELD_ALIASES",
    "SOMATOMETRIA_FIELDS",
    "SOMATOMETRIA_REFERENCE_FRAGMENTS",
    "SOMATOMETRIA_SCHEMA_NAME",
    "SpecializedFieldMapper",
    "bidirectional_match",
    "RecordClassifier",
]
