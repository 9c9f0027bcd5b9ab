# ==============================================
# IngestPipeline: Upload Orchestrator
# ==============================================
#
# PURPOSE:
#   Takes one uploaded CSV from raw bytes to persisted records and
#   drives the upload's status through its lifecycle. The API and
#   the CLI interact with this class only.
#
# HOW IT CONNECTS THE PACKAGES:
#
#   ┌──────────────────────────────────────────────────────────┐
#   │                     IngestPipeline                       │
#   │                                                          │
#   │  persistence/  UploadFileStaging   (staged temp file)    │
#   │        │                                                 │
#   │        ▼                                                 │
#   │  csv_reader    parse_csv_file → ParsedCSV                │
#   │        │                                                 │
#   │        ▼                                                 │
#   │  analysis/     RecordClassifier → ClassificationResult   │
#   │        │                                                 │
#   │   ┌────┴──────────────────────┐                          │
#   │   ▼ SPECIALIZED               ▼ GENERIC                  │
#   │  SpecializedFieldMapper     ColumnTypeInferrer           │
#   │   │                           │  (normalization/)        │
#   │   ▼                           ▼                          │
#   │  storage/      UploadStore (records + status)            │
#   └──────────────────────────────────────────────────────────┘
#
# STATUS LIFECYCLE:
#   pending → processing → completed
#                        → error      (empty file, parse or store failure)
#
# CLASS: IngestPipeline
# ---------------------
#
#   Constructor:
#   ------------
#   - __init__(store, staging=None, classifier=None, mapper=None)
#
#   Public Methods:
#   ---------------
#   - ingest_bytes(content: bytes, original_filename: str) -> IngestResult
#       Stage the bytes on disk, then ingest_file().
#
#   - ingest_file(path, original_filename, file_size=None) -> IngestResult
#       1. Create the Upload (pending) and move it to processing
#       2. Parse the CSV; zero data rows → EmptyFileError
#       3. Classify the original headers
#       4. SPECIALIZED: map + store one record per row, retag upload
#       5. GENERIC: infer column types, store columns then rows
#       6. Store counts, mark completed
#       7. Any failure → mark error with the message and re-raise
#       The staged file is removed on every exit path.
#
#   Nothing is kept between calls; all state lives in the store.
#
# ==============================================

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from csv_ingest.analysis.decision import ClassificationResult, IngestionMode
from csv_ingest.analysis.field_mapper import SOMATOMETRIA_SCHEMA_NAME, SpecializedFieldMapper
from csv_ingest.analysis.record_classifier import RecordClassifier
from csv_ingest.csv_reader import ParsedCSV, parse_csv_file
from csv_ingest.errors import EmptyFileError
from csv_ingest.logger import get_logger
from csv_ingest.normalization.column_normalizer import ColumnNameNormalizer
from csv_ingest.normalization.type_inferrer import ColumnTypeInferrer
from csv_ingest.persistence.upload_files import UploadFileStaging
from csv_ingest.storage.models import UploadStatus
from csv_ingest.storage.upload_store import UploadStore

logger = get_logger(__name__)

EMPTY_FILE_MESSAGE = "CSV file is empty"


@dataclass
class IngestResult:
    upload_id: int
    table_name: str
    mode: IngestionMode
    rows_processed: int
    columns_created: int
    columns: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "table_name": self.table_name,
            "mode": self.mode.value,
            "rows_processed": self.rows_processed,
            "columns_created": self.columns_created,
            "columns": list(self.columns),
        }


class IngestPipeline:
    """
    Runs one upload through parse → classify → map/infer → persist.
    """

    def __init__(
        self,
        store: UploadStore,
        staging: Optional[UploadFileStaging] = None,
        classifier: Optional[RecordClassifier] = None,
        mapper: Optional[SpecializedFieldMapper] = None
    ):
        """
        Initialize the pipeline.

        Args:
            store: Upload record store (already connected)
            staging: Where ingest_bytes() writes uploads. Defaults to "uploads/".
            classifier: Specialized-vs-generic detector
            mapper: Field mapper for the specialized schema
        """
        self.store = store
        self.staging = staging or UploadFileStaging()
        self.classifier = classifier or RecordClassifier()
        self.mapper = mapper or SpecializedFieldMapper()

    def ingest_bytes(self, content: bytes, original_filename: str) -> IngestResult:
        with self.staging.staged(content, original_filename) as path:
            return self.ingest_file(path, original_filename, file_size=len(content))

    def ingest_file(
        self,
        path: Union[str, Path],
        original_filename: str,
        file_size: Optional[int] = None
    ) -> IngestResult:
        """
        Ingest a staged CSV file. The file is deleted before returning.

        Args:
            path: Staged file location
            original_filename: Name the client uploaded
            file_size: Size in bytes; read from disk when omitted

        Returns:
            IngestResult for the completed upload

        Raises:
            EmptyFileError: The file has no data rows
            CsvParseError: The file is not readable CSV
            StoreError: A persist step failed
        """
        path = Path(path)
        try:
            if file_size is None:
                file_size = path.stat().st_size

            table_name = ColumnNameNormalizer.generate_table_name(original_filename)
            upload = self.store.create_upload(original_filename, table_name, file_size)
            self.store.update_upload_status(upload.id, UploadStatus.PROCESSING)
            logger.info("Upload %s (%s, %d bytes) processing", upload.id, original_filename, file_size)

            try:
                return self._process(upload.id, table_name, path)
            except Exception as e:
                self._mark_failed(upload.id, e)
                raise
        finally:
            self.staging.remove(path)

    def _process(self, upload_id: int, table_name: str, path: Path) -> IngestResult:
        parsed = parse_csv_file(path)
        if parsed.is_empty:
            raise EmptyFileError(EMPTY_FILE_MESSAGE)

        classification = self.classifier.classify(parsed.original_headers)
        logger.info(
            "Upload %s classified as %s (%d reference fields matched)",
            upload_id, classification.mode.value, len(classification.matched_fragments)
        )

        if classification.is_specialized:
            result = self._store_specialized(upload_id, parsed, classification)
        else:
            result = self._store_generic(upload_id, table_name, parsed)

        self.store.update_upload_stats(upload_id, result.rows_processed, result.columns_created)
        self.store.update_upload_status(upload_id, UploadStatus.COMPLETED)
        logger.info(
            "✓ Upload %s completed: %d rows, %d columns",
            upload_id, result.rows_processed, result.columns_created
        )
        return result

    def _store_specialized(
        self,
        upload_id: int,
        parsed: ParsedCSV,
        classification: ClassificationResult
    ) -> IngestResult:
        for row in parsed.rows:
            mapped = self.mapper.map_row(row, parsed.original_headers)
            self.store.create_somatometria_record(upload_id, mapped)

        schema_name = classification.schema_name or SOMATOMETRIA_SCHEMA_NAME
        self.store.update_upload_table_name(upload_id, schema_name)

        return IngestResult(
            upload_id=upload_id,
            table_name=schema_name,
            mode=IngestionMode.SPECIALIZED,
            rows_processed=parsed.row_count,
            columns_created=len(parsed.original_headers),
            columns=list(parsed.normalized_headers),
        )

    def _store_generic(self, upload_id: int, table_name: str, parsed: ParsedCSV) -> IngestResult:
        row_blobs = self._build_row_blobs(parsed)
        column_names = list(dict.fromkeys(parsed.normalized_headers))

        for position, column_name in enumerate(column_names, start=1):
            values = [blob.get(column_name, "") for blob in row_blobs]
            column_type = ColumnTypeInferrer.infer(values)
            self.store.create_column(upload_id, table_name, column_name, column_type.value, position)

        for row_index, blob in enumerate(row_blobs, start=1):
            self.store.create_row(upload_id, table_name, row_index, blob)

        return IngestResult(
            upload_id=upload_id,
            table_name=table_name,
            mode=IngestionMode.GENERIC,
            rows_processed=len(row_blobs),
            columns_created=len(column_names),
            columns=column_names,
        )

    @staticmethod
    def _build_row_blobs(parsed: ParsedCSV) -> List[Dict[str, str]]:
        # Headers that normalize to the same name collapse to one key; the
        # rightmost header's value wins.
        blobs = []
        for row in parsed.rows:
            blob: Dict[str, str] = {}
            for original, normalized in zip(parsed.original_headers, parsed.normalized_headers):
                blob[normalized] = row.get(original, "")
            blobs.append(blob)
        return blobs

    def _mark_failed(self, upload_id: int, error: Exception) -> None:
        message = str(error) or error.__class__.__name__
        logger.error("✗ Upload %s failed: %s", upload_id, message)
        try:
            self.store.update_upload_status(upload_id, UploadStatus.ERROR, message)
        except Exception:
            logger.exception("Could not record failure for upload %s", upload_id)
