# ==============================================
# Tests for Storage + Persistence
# ==============================================
#
# InMemoryUploadStore, the record models, the statistics
# snapshot and the on-disk staging area.
# ==============================================

import json
import threading
from datetime import datetime
from decimal import Decimal

import pytest

from csv_ingest.config import AppConfig, MySQLConfig, ServerConfig, UploadConfig
from csv_ingest.errors import EmptyFileError, UploadNotFoundError
from csv_ingest.statistics import UploadStatistics
from csv_ingest.storage import (
    GenericRow,
    InMemoryUploadStore,
    MySQLUploadStore,
    SomatometriaRecord,
    Upload,
    UploadStatus,
    create_store,
)


# ==============================================
# InMemoryUploadStore
# ==============================================

class TestInMemoryUploadStore:

    def test_create_upload_defaults(self, store):
        upload = store.create_upload("a.csv", "a_1", 10)
        assert upload.id == 1
        assert upload.status == UploadStatus.PENDING
        assert upload.total_rows == 0
        assert upload.created_at is not None

    def test_status_transitions(self, store):
        upload = store.create_upload("a.csv", "a_1", 10)
        store.update_upload_status(upload.id, UploadStatus.PROCESSING)
        assert store.get_upload(upload.id).completed_at is None

        store.update_upload_status(upload.id, UploadStatus.COMPLETED)
        done = store.get_upload(upload.id)
        assert done.status == UploadStatus.COMPLETED
        assert done.completed_at is not None

    def test_error_message_recorded(self, store):
        upload = store.create_upload("a.csv", "a_1", 10)
        store.update_upload_status(upload.id, UploadStatus.ERROR, "bad file")
        assert store.get_upload(upload.id).error_message == "bad file"

    def test_unknown_upload(self, store):
        assert store.get_upload(99) is None
        with pytest.raises(UploadNotFoundError):
            store.update_upload_status(99, UploadStatus.ERROR, "x")

    def test_list_uploads_newest_first(self, store):
        for i in range(3):
            store.create_upload(f"{i}.csv", f"t{i}", 1)
        assert [u.id for u in store.list_uploads()] == [3, 2, 1]
        assert [u.id for u in store.list_uploads(limit=2)] == [3, 2]
        assert len(store.list_uploads(limit=None)) == 3

    def test_returned_objects_are_copies(self, store):
        upload = store.create_upload("a.csv", "a_1", 10)
        upload.table_name = "changed"
        assert store.get_upload(upload.id).table_name == "a_1"

    def test_columns_ordered_by_position(self, store):
        upload = store.create_upload("a.csv", "a_1", 10)
        store.create_column(upload.id, "a_1", "b", "INT", 2)
        store.create_column(upload.id, "a_1", "a", "TEXT", 1)
        assert [c.column_name for c in store.get_columns(upload.id)] == ["a", "b"]

    def test_rows_by_table(self, store):
        first = store.create_upload("a.csv", "a_1", 10)
        second = store.create_upload("b.csv", "b_1", 10)
        store.create_row(first.id, "a_1", 1, {"x": "1"})
        store.create_row(second.id, "b_1", 1, {"x": "2"})
        rows = store.get_rows_by_table("b_1")
        assert [r.row_data for r in rows] == [{"x": "2"}]

    def test_somatometria_missing_fields_are_none(self, store):
        upload = store.create_upload("s.csv", "somatometria", 10)
        record = store.create_somatometria_record(upload.id, {"curp": "X", "peso": 70.0})
        assert record.curp == "X"
        assert record.peso == 70.0
        assert record.imp is None
        assert store.count_somatometria() == 1

    def test_clear_all_resets_ids(self, store):
        upload = store.create_upload("a.csv", "a_1", 10)
        store.create_row(upload.id, "a_1", 1, {"x": "1"})
        store.create_somatometria_record(upload.id, {})
        store.clear_all()

        assert store.list_uploads() == []
        assert store.count_somatometria() == 0
        assert store.get_rows_by_table("a_1") == []
        assert store.create_upload("b.csv", "b_1", 1).id == 1

    @pytest.mark.parametrize("read", [
        lambda s: s.get_upload(1),
        lambda s: s.list_uploads(),
        lambda s: s.get_columns(1),
        lambda s: s.get_rows(1),
        lambda s: s.get_rows_by_table("a_1"),
        lambda s: s.list_somatometria(),
        lambda s: s.count_somatometria(),
    ])
    def test_reads_wait_for_writers(self, store, read):
        """Readers take the same lock as writers."""
        store.create_upload("a.csv", "a_1", 10)
        done = threading.Event()

        def reader():
            read(store)
            done.set()

        with store._lock:
            thread = threading.Thread(target=reader)
            thread.start()
            assert not done.wait(timeout=0.2)

        thread.join(timeout=5)
        assert done.is_set()


class TestCreateStore:

    def _config(self, backend):
        return AppConfig(MySQLConfig(), UploadConfig(), ServerConfig(), store_backend=backend)

    def test_memory_backend(self):
        assert isinstance(create_store(self._config("memory")), InMemoryUploadStore)

    def test_mysql_backend_is_lazy(self):
        """Building the MySQL store does not open a connection."""
        store = create_store(self._config("mysql"))
        assert isinstance(store, MySQLUploadStore)


# ==============================================
# Models
# ==============================================

class TestModels:

    def test_upload_to_dict(self):
        upload = Upload(id=1, original_filename="a.csv", table_name="a_1", file_size=3,
                        created_at=datetime(2024, 1, 2, 3, 4, 5))
        data = upload.to_dict()
        assert data["upload_status"] == "pending"
        assert data["created_at"] == "2024-01-02T03:04:05"
        assert data["completed_at"] is None

    def test_upload_from_row(self):
        upload = Upload.from_row({
            "id": 4, "original_filename": "a.csv", "table_name": "t", "file_size": 9,
            "upload_status": "completed", "total_rows": None,
        })
        assert upload.status == UploadStatus.COMPLETED
        assert upload.total_rows == 0

    def test_generic_row_json(self):
        row = GenericRow(id=1, upload_id=1, table_name="t", row_index=1, row_data={"nombre": "José"})
        assert json.loads(row.serialized_row_data()) == {"nombre": "José"}

        loaded = GenericRow.from_row({
            "id": 1, "upload_id": 1, "table_name": "t", "row_index": 1,
            "row_data": row.serialized_row_data(),
        })
        assert loaded.row_data == {"nombre": "José"}

    def test_somatometria_from_row_converts_decimals(self):
        record = SomatometriaRecord.from_row({
            "id": 1, "upload_id": 2, "peso": Decimal("72.50"), "unexpected": "x",
        })
        assert record.peso == 72.5
        assert isinstance(record.peso, float)
        assert "peso" in record.to_dict()


# ==============================================
# Statistics
# ==============================================

class TestUploadStatistics:

    def test_empty_store(self, store):
        data = UploadStatistics.collect(store).to_dict()
        assert data == {
            "totalFiles": 0,
            "totalRecords": 0,
            "completedUploads": 0,
            "failedUploads": 0,
            "somatometriaRecords": 0,
            "recentUploads": [],
        }

    def test_counts(self, pipeline, store, make_csv, somatometria_csv):
        pipeline.ingest_bytes(make_csv(["name"], [["a"], ["b"], ["c"]]), "ok.csv")
        pipeline.ingest_bytes(somatometria_csv, "soma.csv")
        with pytest.raises(EmptyFileError):
            pipeline.ingest_bytes(b"name\n", "empty.csv")

        stats = UploadStatistics.collect(store)
        assert stats.total_files == 3
        assert stats.total_records == 5
        assert stats.completed_uploads == 2
        assert stats.failed_uploads == 1
        assert stats.somatometria_records == 2

    def test_recent_uploads_capped_at_five(self, store):
        for i in range(7):
            store.create_upload(f"{i}.csv", f"t{i}", 1)
        stats = UploadStatistics.collect(store)
        assert stats.total_files == 7
        assert [u.id for u in stats.recent_uploads] == [7, 6, 5, 4, 3]


# ==============================================
# UploadFileStaging
# ==============================================

class TestUploadFileStaging:

    def test_save_and_remove(self, staging):
        path = staging.save(b"a,b\n", "data.csv")
        assert path.read_bytes() == b"a,b\n"
        assert path.name.endswith("-data.csv")

        staging.remove(path)
        assert not path.exists()
        staging.remove(path)  # already gone

    def test_same_name_never_collides(self, staging):
        first = staging.save(b"1", "same.csv")
        second = staging.save(b"2", "same.csv")
        assert first != second

    def test_directory_parts_are_dropped(self, staging):
        path = staging.save(b"x", "../../etc/evil.csv")
        assert path.parent == staging.storage_dir

    def test_staged_context_removes_on_error(self, staging):
        with pytest.raises(RuntimeError):
            with staging.staged(b"x", "a.csv") as path:
                assert path.exists()
                raise RuntimeError("boom")
        assert not path.exists()


# ==============================================
# MySQLUploadStore (SQL shape only, no server)
# ==============================================

class RecordingClient:
    """Stands in for MySQLClient; records every statement."""

    def __init__(self, rows=None):
        self.statements = []
        self.rows = rows or []

    def execute(self, query, params=None):
        self.statements.append((" ".join(query.split()), params))
        return len(self.statements)

    def fetch_all(self, query, params=None):
        self.statements.append((" ".join(query.split()), params))
        return list(self.rows)

    def fetch_one(self, query, params=None):
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None


class TestMySQLUploadStore:

    def test_completed_status_sets_timestamp(self):
        client = RecordingClient()
        MySQLUploadStore(client).update_upload_status(7, UploadStatus.COMPLETED)
        query, params = client.statements[-1]
        assert "completed_at = NOW()" in query
        assert params == ("completed", 7)

    def test_error_status_records_message(self):
        client = RecordingClient()
        MySQLUploadStore(client).update_upload_status(7, UploadStatus.ERROR, "CSV file is empty")
        query, params = client.statements[-1]
        assert "error_message = %s" in query
        assert params == ("error", "CSV file is empty", 7)

    def test_unbounded_list_has_no_limit(self):
        client = RecordingClient()
        MySQLUploadStore(client).list_uploads(limit=None)
        query, params = client.statements[-1]
        assert "LIMIT" not in query
        assert params is None

    def test_somatometria_insert_covers_every_field(self):
        client = RecordingClient()
        record = MySQLUploadStore(client).create_somatometria_record(3, {"peso": 72.5})
        query, params = client.statements[-1]
        assert query.startswith("INSERT INTO somatometria (upload_id, no_control, curp,")
        assert params[0] == 3
        assert len(params) == 24
        assert record.peso == 72.5
        assert record.curp is None

    def test_row_data_serialized_as_json(self):
        client = RecordingClient()
        MySQLUploadStore(client).create_row(1, "t", 1, {"a": "1"})
        _, params = client.statements[-1]
        assert json.loads(params[2]) == {"a": "1"}

    def test_clear_all_truncates_children_first(self):
        client = RecordingClient()
        MySQLUploadStore(client).clear_all()
        assert [q for q, _ in client.statements] == [
            "TRUNCATE TABLE somatometria",
            "TRUNCATE TABLE csv_data",
            "TRUNCATE TABLE table_columns",
            "TRUNCATE TABLE file_uploads",
        ]
