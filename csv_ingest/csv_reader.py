import csv
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from typing import Dict, List, Union

from csv_ingest.errors import CsvParseError
from csv_ingest.normalization.column_normalizer import ColumnNameNormalizer


@dataclass
class ParsedCSV:
    """
    Result of reading one CSV file.

    original_headers keep the spelling from the file (used by the
    classifier and the field mapper); normalized_headers are the
    storage keys, index-aligned with original_headers.
    """
    original_headers: List[str] = field(default_factory=list)
    normalized_headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows


def parse_csv_text(text: str) -> ParsedCSV:
    """
    Parse CSV text into original headers, normalized headers and rows.

    The first row is the header row. Every later non-blank row becomes
    a mapping original header → string value; short rows are padded
    with "" and surplus cells are dropped.
    """
    try:
        reader = csv.DictReader(StringIO(text), restval="")
        headers = list(reader.fieldnames or [])
        rows = []
        for raw in reader:
            raw.pop(None, None)
            rows.append({key: (value if value is not None else "") for key, value in raw.items()})
    except csv.Error as e:
        raise CsvParseError(f"Malformed CSV: {e}") from e

    return ParsedCSV(
        original_headers=headers,
        normalized_headers=ColumnNameNormalizer.normalize_all(headers),
        rows=rows
    )


def parse_csv_bytes(content: bytes, encoding: str = "utf-8-sig") -> ParsedCSV:
    try:
        decoded = content.decode(encoding)
    except UnicodeDecodeError as e:
        raise CsvParseError(f"CSV file is not valid {encoding}: {e}") from e
    return parse_csv_text(decoded)


def parse_csv_file(path: Union[str, Path], encoding: str = "utf-8-sig") -> ParsedCSV:
    """Read and parse a CSV file from disk."""
    return parse_csv_bytes(Path(path).read_bytes(), encoding=encoding)
