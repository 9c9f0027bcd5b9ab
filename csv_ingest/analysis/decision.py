# ==============================================
# Decision (Data Classes)
# ==============================================
#
# PURPOSE:
#   Data classes that represent the OUTPUT of schema inference
#   and classification, plus the thresholds that control how
#   the classifier decides.
#
# WHY THIS FILE EXISTS:
#   Keeping the result types apart from the logic lets the
#   pipeline, the store and the API share them without importing
#   the classifier or the inferrer.
#
# ENUMS:
# ------
# - ColumnType(Enum): TEXT, VARCHAR, DECIMAL, INTEGER
#     Storage type tag for a generic column. The value is the SQL
#     type written to ColumnDefinition.column_type.
#
# - IngestionMode(Enum): GENERIC, SPECIALIZED
#     Which storage path an upload takes.
#
# CLASSES:
# --------
# - ClassifierThresholds (dataclass)
#     - min_matched_fragments: int → matches needed for SPECIALIZED (default 6)
#
# - ClassificationResult (dataclass)
#     - mode: IngestionMode
#     - matched_fragments: list[str]
#     - schema_name: str | None
#
# ==============================================

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ColumnType(Enum):
    """
    Storage type inferred for a generic column.

    - TEXT: unbounded text (empty columns, or long character data)
    - VARCHAR: bounded string of up to 255 characters
    - DECIMAL: fixed-point number, precision 10, scale 2
    - INTEGER: whole number
    """
    TEXT = "TEXT"
    VARCHAR = "VARCHAR(255)"
    DECIMAL = "DECIMAL(10,2)"
    INTEGER = "INT"


class IngestionMode(Enum):
    """Storage path chosen for an upload."""
    GENERIC = "generic"
    SPECIALIZED = "specialized"


@dataclass
class ClassifierThresholds:
    """
    Configurable threshold for the specialized-schema detector.
    """

    min_matched_fragments: int = 6
    """
    Number of reference fragments that must match the headers before
    a file is treated as the specialized schema.
    """


@dataclass
class ClassificationResult:
    """
    Outcome of classifying one file's headers.
    """

    mode: IngestionMode
    matched_fragments: List[str] = field(default_factory=list)
    schema_name: Optional[str] = None  # Set only for SPECIALIZED results

    @property
    def is_specialized(self) -> bool:
        return self.mode == IngestionMode.SPECIALIZED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "matched_fragments": list(self.matched_fragments),
            "schema_name": self.schema_name,
        }
