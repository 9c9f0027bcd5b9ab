# ==============================================
# NORMALIZATION
# ==============================================
#
# This package turns raw CSV headers and values into the
# forms the rest of the pipeline works with.
#
# Modules:
# --------
# - column_normalizer.py → Clean header strings into safe identifiers
# - type_inferrer.py     → Infer a storage type for a column's values
#
# ==============================================

from .column_normalizer import ColumnNameNormalizer
from .type_inferrer import ColumnTypeInferrer

__all__ = ["ColumnNameNormalizer", "ColumnTypeInferrer"]
