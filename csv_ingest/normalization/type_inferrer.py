import re
from typing import Iterable

from csv_ingest.analysis.decision import ColumnType


class ColumnTypeInferrer:
    """
    Infers a storage type for one column from its raw string values.

    The scan is a single left-to-right pass. The first value that is not
    a number settles the column as character data, and only the values
    seen up to that point decide between VARCHAR(255) and TEXT.
    """

    MAX_VARCHAR_LENGTH = 255

    _RADIX_LITERAL = re.compile(r"0[xX][0-9a-fA-F]+|0[bB][01]+|0[oO][0-7]+")
    _INFINITY_LITERALS = frozenset({"Infinity", "+Infinity", "-Infinity"})

    @classmethod
    def infer(cls, values: Iterable[str]) -> ColumnType:
        """
        Infer the column type for a sequence of raw values.

        Args:
            values: Raw values for the column, in row order. Blank or
                    whitespace-only entries are ignored.

        Returns:
            ColumnType.TEXT, VARCHAR, DECIMAL or INTEGER
        """
        seen_any = False
        has_decimals = False
        max_length = 0

        for value in values:
            if value is None:
                continue
            trimmed = value.strip()
            if not trimmed:
                continue

            seen_any = True
            max_length = max(max_length, len(trimmed))

            if not cls.is_number(trimmed):
                if max_length > cls.MAX_VARCHAR_LENGTH:
                    return ColumnType.TEXT
                return ColumnType.VARCHAR

            if "." in trimmed:
                has_decimals = True

        if not seen_any:
            return ColumnType.TEXT
        if has_decimals:
            return ColumnType.DECIMAL
        return ColumnType.INTEGER

    @classmethod
    def is_number(cls, value: str) -> bool:
        """
        Check whether a trimmed value is numeric data.

        Accepted: decimal and exponent forms, unsigned 0x/0b/0o literals
        and "Infinity" (exact spelling, optional sign). Rejected: digit
        separators ("1_000") and float()'s own words ("inf", "nan").
        """
        if cls._RADIX_LITERAL.fullmatch(value) or value in cls._INFINITY_LITERALS:
            return True
        if "_" in value:
            return False
        lowered = value.lower()
        if "inf" in lowered or "nan" in lowered:
            return False
        try:
            float(value)
        except (ValueError, TypeError):
            return False
        return True
