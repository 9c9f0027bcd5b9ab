# ==============================================
# ColumnNameNormalizer
# ==============================================
#
# PURPOSE:
#   Convert raw CSV header strings into safe storage identifiers
#   so they can be used as keys in row blobs and as column names
#   in ColumnDefinitions.
#
# WHY THIS CLASS EXISTS:
#   Headers arrive exactly as the user typed them in a spreadsheet:
#     - "Peso (kg)", "No. Control", "Apellido Paterno"
#     - " edad ", "CURP", "Fecha/Hora"
#   Storage needs a stable, ASCII-only form of each one, and the
#   classifier and mapper compare headers in that same form.
#
# CLASS: ColumnNameNormalizer
# ---------------------------
#   Stateless utility class. Takes a raw header, returns the cleaned name.
#
#   Methods:
#   --------
#   - normalize(name: str) -> str      (classmethod)
#       Clean a single header.
#
#   - normalize_all(names) -> list[str] (classmethod)
#       Clean every header, preserving order.
#
#   - generate_table_name(filename, timestamp_ms=None) -> str (classmethod)
#       Build the logical table-name tag for an upload.
#
# RULES:
# ------
#   1. Strip surrounding whitespace
#   2. Every character outside [A-Za-z0-9_] becomes "_"
#   3. Lowercase
#   4. Truncate to 60 characters
#   Empty input yields "". Normalizing twice equals normalizing once.
#
# ==============================================

import re
import time
from typing import Iterable, List, Optional


class ColumnNameNormalizer:
    """
    Converts raw header strings to lowercase [a-z0-9_] identifiers.
    """

    MAX_LENGTH = 60

    _UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_]")
    _UNSAFE_TABLE_CHARS = re.compile(r"[^a-zA-Z0-9]")
    _CSV_SUFFIX = re.compile(r"\.csv$", re.IGNORECASE)

    @classmethod
    def normalize(cls, name: str) -> str:
        """
        Clean a raw header into a storage-safe identifier.

        Args:
            name: Raw header (e.g., "Peso (kg)")

        Returns:
            Cleaned identifier (e.g., "peso__kg_")
        """
        if not name:
            return ""

        cleaned = cls._UNSAFE_CHARS.sub("_", name.strip())
        return cleaned.lower()[:cls.MAX_LENGTH]

    @classmethod
    def normalize_all(cls, names: Iterable[str]) -> List[str]:
        return [cls.normalize(name) for name in names]

    @classmethod
    def generate_table_name(cls, filename: str, timestamp_ms: Optional[int] = None) -> str:
        """
        Build the logical table-name tag for an uploaded file.

        Args:
            filename: Original filename (e.g., "Grupo 3A.csv")
            timestamp_ms: Epoch milliseconds suffix. Defaults to now.

        Returns:
            Tag such as "grupo_3a_1718000000000"; names starting with a
            digit get a "table_" prefix.
        """
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)

        base = cls._CSV_SUFFIX.sub("", filename or "")
        base = cls._UNSAFE_TABLE_CHARS.sub("_", base).lower()
        prefix = "table_" if base[:1].isdigit() else ""
        return f"{prefix}{base}_{timestamp_ms}"
