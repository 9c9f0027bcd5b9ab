# ==============================================
# RecordClassifier
# ==============================================
#
# PURPOSE:
#   Look at the headers of a parsed file and decide whether the
#   upload belongs to the specialized "somatometria" schema or to
#   the generic key/value row store.
#
# WHY THIS CLASS EXISTS:
#   The same upload endpoint receives both clinic measurement
#   sheets and arbitrary CSVs. There is no flag in the request;
#   the headers are the only evidence.
#
# CLASS: RecordClassifier
# -----------------------
#   Stateless: takes headers in, produces a ClassificationResult out.
#
#   Constructor:
#   ------------
#   - __init__(thresholds=None, reference_fragments=SOMATOMETRIA_REFERENCE_FRAGMENTS)
#
#   Methods:
#   --------
#   - classify(headers: list[str]) -> ClassificationResult
#       RULE 1: normalize every header
#       RULE 2: a reference fragment counts as matched when it and
#               any normalized header contain one another
#       RULE 3: matched >= thresholds.min_matched_fragments → SPECIALIZED
#       RULE 4: everything else → GENERIC
#
#   - matched_fragments(headers: list[str]) -> list[str]
#       The fragments counted by RULE 2, in reference order.
#
#   This is a threshold heuristic, not schema validation; a few false
#   positives and negatives are accepted.
#
# ==============================================

from typing import Iterable, List, Optional, Tuple

from .decision import ClassificationResult, ClassifierThresholds, IngestionMode
from .field_mapper import (
    SOMATOMETRIA_REFERENCE_FRAGMENTS,
    SOMATOMETRIA_SCHEMA_NAME,
    bidirectional_match,
)
from csv_ingest.normalization.column_normalizer import ColumnNameNormalizer


class RecordClassifier:
    """
    Decides between the specialized schema and the generic store
    by counting reference fragments found among the headers.
    """

    def __init__(
        self,
        thresholds: Optional[ClassifierThresholds] = None,
        reference_fragments: Tuple[str, ...] = SOMATOMETRIA_REFERENCE_FRAGMENTS,
        schema_name: str = SOMATOMETRIA_SCHEMA_NAME
    ):
        """
        Initialize the classifier.

        Args:
            thresholds: Optional ClassifierThresholds. Defaults to 6 matches.
            reference_fragments: Field-name fragments expected in the
                                 specialized schema
            schema_name: Name reported for specialized results
        """
        self.thresholds = thresholds or ClassifierThresholds()
        self.reference_fragments = tuple(reference_fragments)
        self.schema_name = schema_name

    def classify(self, headers: Iterable[str]) -> ClassificationResult:
        """
        Classify a file by its raw headers.

        Args:
            headers: Original (un-normalized) header strings

        Returns:
            ClassificationResult with the chosen mode and matched fragments
        """
        matched = self.matched_fragments(headers)

        if len(matched) >= self.thresholds.min_matched_fragments:
            return ClassificationResult(
                mode=IngestionMode.SPECIALIZED,
                matched_fragments=matched,
                schema_name=self.schema_name
            )

        return ClassificationResult(
            mode=IngestionMode.GENERIC,
            matched_fragments=matched
        )

    def matched_fragments(self, headers: Iterable[str]) -> List[str]:
        cleaned_headers = ColumnNameNormalizer.normalize_all(headers)
        return [
            fragment
            for fragment in self.reference_fragments
            if any(bidirectional_match(header, fragment) for header in cleaned_headers)
        ]
