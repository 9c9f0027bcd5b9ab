# ==============================================
# Tests for IngestPipeline
# ==============================================
#
# End-to-end runs through the orchestrator with the
# in-memory store: generic files, specialized files,
# empty files and store failures.
# ==============================================

import pytest

from csv_ingest.analysis.decision import IngestionMode
from csv_ingest.csv_reader import parse_csv_bytes, parse_csv_text
from csv_ingest.errors import CsvParseError, EmptyFileError, StoreError
from csv_ingest.ingest_pipeline import EMPTY_FILE_MESSAGE, IngestPipeline
from csv_ingest.storage.models import UploadStatus
from csv_ingest.storage.upload_store import InMemoryUploadStore


class FailingRowStore(InMemoryUploadStore):
    """Store whose row inserts always fail."""

    def create_row(self, *args, **kwargs):
        raise StoreError("disk full")


def staged_files(staging):
    return list(staging.storage_dir.iterdir())


# ==============================================
# CSV Reader
# ==============================================

class TestCsvReader:

    def test_headers_and_rows(self):
        parsed = parse_csv_text("Name,Age\nAna,17\nLuis,18\n")
        assert parsed.original_headers == ["Name", "Age"]
        assert parsed.normalized_headers == ["name", "age"]
        assert parsed.rows == [{"Name": "Ana", "Age": "17"}, {"Name": "Luis", "Age": "18"}]
        assert parsed.row_count == 2

    def test_short_rows_padded_long_rows_trimmed(self):
        parsed = parse_csv_text("a,b\n1\n2,3,4\n")
        assert parsed.rows == [{"a": "1", "b": ""}, {"a": "2", "b": "3"}]

    def test_quoted_commas(self):
        parsed = parse_csv_text('name,city\n"Pérez, Juan","CDMX"\n')
        assert parsed.rows[0]["name"] == "Pérez, Juan"

    def test_header_only_is_empty(self):
        assert parse_csv_text("name,age\n").is_empty

    def test_bom_is_dropped(self):
        parsed = parse_csv_bytes(b"\xef\xbb\xbfname\nAna\n")
        assert parsed.original_headers == ["name"]

    def test_invalid_encoding(self):
        with pytest.raises(CsvParseError):
            parse_csv_bytes(b"name\n\xff\xfe\xfa\n")


# ==============================================
# Generic ingestion
# ==============================================

class TestGenericIngestion:
    """Files that do not look like the specialized schema."""

    def test_name_age_file(self, pipeline, store, make_csv):
        content = make_csv(["name", "age"], [["Ann", "30"], ["Bo", "x"], ["Cy", ""]])
        result = pipeline.ingest_bytes(content, "alumnos.csv")

        assert result.mode == IngestionMode.GENERIC
        assert result.rows_processed == 3
        assert result.columns_created == 2
        assert result.columns == ["name", "age"]
        assert result.table_name.startswith("alumnos_")

        columns = store.get_columns(result.upload_id)
        assert [(c.column_name, c.column_type, c.column_position) for c in columns] == [
            ("name", "VARCHAR(255)", 1),
            ("age", "VARCHAR(255)", 2),
        ]

        rows = store.get_rows(result.upload_id)
        assert [r.row_index for r in rows] == [1, 2, 3]
        assert rows[0].row_data == {"name": "Ann", "age": "30"}
        assert rows[2].row_data == {"name": "Cy", "age": ""}
        assert all(r.table_name == result.table_name for r in rows)

        upload = store.get_upload(result.upload_id)
        assert upload.status == UploadStatus.COMPLETED
        assert upload.total_rows == 3
        assert upload.total_columns == 2
        assert upload.completed_at is not None
        assert upload.error_message is None

    def test_numeric_columns(self, pipeline, store, make_csv):
        content = make_csv(["id", "score"], [["1", "9.5"], ["2", "8"]])
        result = pipeline.ingest_bytes(content, "scores.csv")
        types = {c.column_name: c.column_type for c in store.get_columns(result.upload_id)}
        assert types == {"id": "INT", "score": "DECIMAL(10,2)"}

    def test_colliding_headers_collapse(self, pipeline, store, make_csv):
        content = make_csv(["Peso (kg)", "PESO [KG]"], [["1", "2"]])
        result = pipeline.ingest_bytes(content, "dup.csv")
        assert result.columns == ["peso__kg_"]
        assert store.get_rows(result.upload_id)[0].row_data == {"peso__kg_": "2"}

    def test_same_file_twice_gives_independent_uploads(self, pipeline, store, make_csv):
        content = make_csv(["name"], [["Ana"]])
        first = pipeline.ingest_bytes(content, "same.csv")
        second = pipeline.ingest_bytes(content, "same.csv")

        assert first.upload_id != second.upload_id
        assert len(store.get_rows(first.upload_id)) == 1
        assert len(store.get_rows(second.upload_id)) == 1

    def test_staged_file_removed_after_success(self, pipeline, staging, make_csv):
        pipeline.ingest_bytes(make_csv(["a"], [["1"]]), "a.csv")
        assert staged_files(staging) == []


# ==============================================
# Specialized ingestion
# ==============================================

class TestSpecializedIngestion:
    """Files recognized as somatometria measurement sheets."""

    def test_records_are_mapped(self, pipeline, store, somatometria_csv):
        result = pipeline.ingest_bytes(somatometria_csv, "grupo_3a.csv")

        assert result.mode == IngestionMode.SPECIALIZED
        assert result.table_name == "somatometria"
        assert result.rows_processed == 2
        assert result.columns_created == 12

        upload = store.get_upload(result.upload_id)
        assert upload.table_name == "somatometria"
        assert upload.status == UploadStatus.COMPLETED
        assert upload.total_rows == 2

        # no generic rows or columns for specialized uploads
        assert store.get_columns(result.upload_id) == []
        assert store.get_rows(result.upload_id) == []

        records = sorted(store.list_somatometria(), key=lambda r: r.id)
        assert len(records) == 2
        ana, juan = records
        assert ana.upload_id == result.upload_id
        assert ana.curp == "GOMA050101HDFRRN09"
        assert ana.paterno == "Gómez"
        assert ana.edad == 17
        assert ana.peso == 72.5
        assert ana.temperatura == 36.6
        assert ana.perimetro is None
        assert juan.edad is None
        assert juan.peso is None
        assert juan.estatura == 1.72

    def test_count(self, pipeline, store, somatometria_csv):
        pipeline.ingest_bytes(somatometria_csv, "a.csv")
        assert store.count_somatometria() == 2


# ==============================================
# Failures
# ==============================================

class TestIngestionFailures:

    def test_empty_file(self, pipeline, store, staging):
        with pytest.raises(EmptyFileError):
            pipeline.ingest_bytes(b"name,age\n", "empty.csv")

        upload = store.list_uploads()[0]
        assert upload.status == UploadStatus.ERROR
        assert upload.error_message == EMPTY_FILE_MESSAGE
        assert upload.total_rows == 0
        assert upload.total_columns == 0
        assert store.get_columns(upload.id) == []
        assert staged_files(staging) == []

    def test_zero_byte_file(self, pipeline, store):
        with pytest.raises(EmptyFileError):
            pipeline.ingest_bytes(b"", "nothing.csv")
        assert store.list_uploads()[0].status == UploadStatus.ERROR

    def test_store_failure_marks_error_and_cleans_up(self, staging, make_csv):
        store = FailingRowStore()
        pipeline = IngestPipeline(store, staging=staging)

        with pytest.raises(StoreError):
            pipeline.ingest_bytes(make_csv(["name"], [["Ana"]]), "boom.csv")

        upload = store.list_uploads()[0]
        assert upload.status == UploadStatus.ERROR
        assert upload.error_message == "disk full"
        assert upload.completed_at is None
        assert staged_files(staging) == []

    def test_ingest_file_reads_size_from_disk(self, pipeline, store, staging, make_csv):
        content = make_csv(["name"], [["Ana"]])
        path = staging.save(content, "disk.csv")

        result = pipeline.ingest_file(path, "disk.csv")

        assert store.get_upload(result.upload_id).file_size == len(content)
        assert not path.exists()
