# ==============================================
# UploadStore
# ==============================================
#
# PURPOSE:
#   Persist upload metadata, generic column definitions, generic
#   rows and specialized records. The ingestion pipeline and the
#   API only talk to this interface.
#
# CLASSES:
# --------
# - UploadStore (abstract)
#     create_upload(original_filename, table_name, file_size) -> Upload
#     get_upload(upload_id) -> Upload | None
#     list_uploads(limit=50) -> list[Upload]          (newest first, None = all)
#     update_upload_status(upload_id, status, error_message=None) -> None
#         COMPLETED also stamps completed_at.
#     update_upload_stats(upload_id, total_rows, total_columns) -> None
#     update_upload_table_name(upload_id, table_name) -> None
#     create_column(upload_id, table_name, column_name, column_type, column_position) -> ColumnDefinition
#     get_columns(upload_id) -> list[ColumnDefinition] (by position)
#     create_row(upload_id, table_name, row_index, row_data) -> GenericRow
#     get_rows(upload_id, limit=100) -> list[GenericRow]
#     get_rows_by_table(table_name, limit=100) -> list[GenericRow]
#     create_somatometria_record(upload_id, values) -> SomatometriaRecord
#     list_somatometria(limit=100) -> list[SomatometriaRecord] (newest first)
#     count_somatometria() -> int
#     clear_all() -> None
#
# - MySQLUploadStore    → pymysql-backed, creates its tables on connect()
# - InMemoryUploadStore → process-local dicts, for tests and STORE_BACKEND=memory
#
# FUNCTION:
# ---------
# - create_store(config: AppConfig) -> UploadStore
#
# ==============================================

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from csv_ingest.analysis.field_mapper import SOMATOMETRIA_FIELDS
from csv_ingest.config import AppConfig
from csv_ingest.errors import UploadNotFoundError
from csv_ingest.logger import get_logger
from .models import ColumnDefinition, GenericRow, SomatometriaRecord, Upload, UploadStatus
from .mysql_client import MySQLClient

logger = get_logger(__name__)


class UploadStore(ABC):
    """Create/read/update operations over uploads and their records."""

    def connect(self) -> None:
        pass

    def close(self) -> None:
        pass

    @abstractmethod
    def create_upload(self, original_filename: str, table_name: str, file_size: int) -> Upload:
        ...

    @abstractmethod
    def get_upload(self, upload_id: int) -> Optional[Upload]:
        ...

    @abstractmethod
    def list_uploads(self, limit: Optional[int] = 50) -> List[Upload]:
        ...

    @abstractmethod
    def update_upload_status(
        self,
        upload_id: int,
        status: UploadStatus,
        error_message: Optional[str] = None
    ) -> None:
        ...

    @abstractmethod
    def update_upload_stats(self, upload_id: int, total_rows: int, total_columns: int) -> None:
        ...

    @abstractmethod
    def update_upload_table_name(self, upload_id: int, table_name: str) -> None:
        ...

    @abstractmethod
    def create_column(
        self,
        upload_id: int,
        table_name: str,
        column_name: str,
        column_type: str,
        column_position: int
    ) -> ColumnDefinition:
        ...

    @abstractmethod
    def get_columns(self, upload_id: int) -> List[ColumnDefinition]:
        ...

    @abstractmethod
    def create_row(
        self,
        upload_id: int,
        table_name: str,
        row_index: int,
        row_data: Dict[str, str]
    ) -> GenericRow:
        ...

    @abstractmethod
    def get_rows(self, upload_id: int, limit: int = 100) -> List[GenericRow]:
        ...

    @abstractmethod
    def get_rows_by_table(self, table_name: str, limit: int = 100) -> List[GenericRow]:
        ...

    @abstractmethod
    def create_somatometria_record(self, upload_id: int, values: Dict[str, Any]) -> SomatometriaRecord:
        ...

    @abstractmethod
    def list_somatometria(self, limit: int = 100) -> List[SomatometriaRecord]:
        ...

    @abstractmethod
    def count_somatometria(self) -> int:
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _somatometria_values(values: Dict[str, Any]) -> Dict[str, Any]:
    # Unmatched schema fields are stored as NULL
    return {name: values.get(name) for name in SOMATOMETRIA_FIELDS}


class InMemoryUploadStore(UploadStore):
    """
    Keeps every record in process memory. Ids start at 1 per record kind,
    matching an auto-increment table.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._uploads: Dict[int, Upload] = {}
        self._columns: List[ColumnDefinition] = []
        self._rows: List[GenericRow] = []
        self._somatometria: List[SomatometriaRecord] = []
        self._next_ids = {"uploads": 1, "columns": 1, "rows": 1, "somatometria": 1}

    def _next_id(self, kind: str) -> int:
        next_id = self._next_ids[kind]
        self._next_ids[kind] = next_id + 1
        return next_id

    def _require_upload(self, upload_id: int) -> Upload:
        upload = self._uploads.get(upload_id)
        if upload is None:
            raise UploadNotFoundError(f"Upload {upload_id} not found")
        return upload

    def create_upload(self, original_filename: str, table_name: str, file_size: int) -> Upload:
        with self._lock:
            upload = Upload(
                id=self._next_id("uploads"),
                original_filename=original_filename,
                table_name=table_name,
                file_size=file_size,
                created_at=datetime.now(timezone.utc),
            )
            self._uploads[upload.id] = upload
            return replace(upload)

    def get_upload(self, upload_id: int) -> Optional[Upload]:
        with self._lock:
            upload = self._uploads.get(upload_id)
            return replace(upload) if upload else None

    def list_uploads(self, limit: Optional[int] = 50) -> List[Upload]:
        with self._lock:
            ordered = sorted(
                self._uploads.values(),
                key=lambda u: (u.created_at, u.id),
                reverse=True
            )
            return [replace(u) for u in ordered[:limit]]

    def update_upload_status(
        self,
        upload_id: int,
        status: UploadStatus,
        error_message: Optional[str] = None
    ) -> None:
        with self._lock:
            upload = self._require_upload(upload_id)
            upload.status = status
            if status == UploadStatus.COMPLETED:
                upload.completed_at = datetime.now(timezone.utc)
            if error_message:
                upload.error_message = error_message

    def update_upload_stats(self, upload_id: int, total_rows: int, total_columns: int) -> None:
        with self._lock:
            upload = self._require_upload(upload_id)
            upload.total_rows = total_rows
            upload.total_columns = total_columns

    def update_upload_table_name(self, upload_id: int, table_name: str) -> None:
        with self._lock:
            self._require_upload(upload_id).table_name = table_name

    def create_column(
        self,
        upload_id: int,
        table_name: str,
        column_name: str,
        column_type: str,
        column_position: int
    ) -> ColumnDefinition:
        with self._lock:
            column = ColumnDefinition(
                id=self._next_id("columns"),
                upload_id=upload_id,
                table_name=table_name,
                column_name=column_name,
                column_type=column_type,
                column_position=column_position,
                created_at=datetime.now(timezone.utc),
            )
            self._columns.append(column)
            return replace(column)

    def get_columns(self, upload_id: int) -> List[ColumnDefinition]:
        with self._lock:
            columns = [c for c in self._columns if c.upload_id == upload_id]
            return [replace(c) for c in sorted(columns, key=lambda c: c.column_position)]

    def create_row(
        self,
        upload_id: int,
        table_name: str,
        row_index: int,
        row_data: Dict[str, str]
    ) -> GenericRow:
        with self._lock:
            row = GenericRow(
                id=self._next_id("rows"),
                upload_id=upload_id,
                table_name=table_name,
                row_index=row_index,
                row_data=dict(row_data),
                created_at=datetime.now(timezone.utc),
            )
            self._rows.append(row)
            return replace(row, row_data=dict(row.row_data))

    def get_rows(self, upload_id: int, limit: int = 100) -> List[GenericRow]:
        with self._lock:
            rows = [r for r in self._rows if r.upload_id == upload_id]
            return [replace(r, row_data=dict(r.row_data)) for r in rows[:limit]]

    def get_rows_by_table(self, table_name: str, limit: int = 100) -> List[GenericRow]:
        with self._lock:
            rows = [r for r in self._rows if r.table_name == table_name]
            return [replace(r, row_data=dict(r.row_data)) for r in rows[:limit]]

    def create_somatometria_record(self, upload_id: int, values: Dict[str, Any]) -> SomatometriaRecord:
        with self._lock:
            record = SomatometriaRecord(
                id=self._next_id("somatometria"),
                upload_id=upload_id,
                created_at=datetime.now(timezone.utc),
                **_somatometria_values(values)
            )
            self._somatometria.append(record)
            return replace(record)

    def list_somatometria(self, limit: int = 100) -> List[SomatometriaRecord]:
        with self._lock:
            ordered = sorted(self._somatometria, key=lambda r: (r.created_at, r.id), reverse=True)
            return [replace(r) for r in ordered[:limit]]

    def count_somatometria(self) -> int:
        with self._lock:
            return len(self._somatometria)

    def clear_all(self) -> None:
        with self._lock:
            self._uploads.clear()
            self._columns.clear()
            self._rows.clear()
            self._somatometria.clear()
            self._next_ids = {kind: 1 for kind in self._next_ids}


class MySQLUploadStore(UploadStore):
    """
    Upload store on MySQL. Tables are created on connect() when missing.
    """

    SCHEMA = [
        """
        CREATE TABLE IF NOT EXISTS file_uploads (
            id INT AUTO_INCREMENT PRIMARY KEY,
            original_filename VARCHAR(255) NOT NULL,
            table_name VARCHAR(255) NOT NULL,
            file_size INT NOT NULL,
            total_rows INT DEFAULT 0,
            total_columns INT DEFAULT 0,
            upload_status VARCHAR(20) NOT NULL DEFAULT 'pending',
            error_message TEXT NULL,
            created_at TIMESTAMP(6) DEFAULT CURRENT_TIMESTAMP(6),
            completed_at TIMESTAMP NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS table_columns (
            id INT AUTO_INCREMENT PRIMARY KEY,
            upload_id INT NOT NULL,
            table_name VARCHAR(255) NOT NULL,
            column_name VARCHAR(60) NOT NULL,
            column_type VARCHAR(50) NOT NULL,
            column_position INT NOT NULL,
            is_nullable BOOLEAN DEFAULT TRUE,
            default_value TEXT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            INDEX idx_table_columns_upload (upload_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS csv_data (
            id INT AUTO_INCREMENT PRIMARY KEY,
            upload_id INT NOT NULL,
            table_name VARCHAR(255) NOT NULL,
            row_data JSON NOT NULL,
            row_index INT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            INDEX idx_csv_data_upload (upload_id),
            INDEX idx_csv_data_table (table_name)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS somatometria (
            id INT AUTO_INCREMENT PRIMARY KEY,
            upload_id INT NOT NULL,
            no_control VARCHAR(50) NULL,
            curp VARCHAR(18) NULL,
            nombre VARCHAR(100) NULL,
            paterno VARCHAR(100) NULL,
            materno VARCHAR(100) NULL,
            grupo VARCHAR(50) NULL,
            edad INT NULL,
            certificacion_medica VARCHAR(100) NULL,
            sexo VARCHAR(20) NULL,
            peso DECIMAL(6,2) NULL,
            perimetro DECIMAL(6,2) NULL,
            estatura DECIMAL(6,2) NULL,
            tension VARCHAR(20) NULL,
            tension_a INT NULL,
            presion_a INT NULL,
            tension_d INT NULL,
            frecuencia INT NULL,
            temperatura DECIMAL(5,2) NULL,
            saturacion DECIMAL(5,2) NULL,
            glucometria DECIMAL(6,2) NULL,
            imc DECIMAL(5,2) NULL,
            clasificacion VARCHAR(100) NULL,
            imp VARCHAR(50) NULL,
            created_at TIMESTAMP(6) DEFAULT CURRENT_TIMESTAMP(6),
            INDEX idx_somatometria_upload (upload_id)
        )
        """,
    ]

    def __init__(self, client: MySQLClient):
        self.client = client

    @classmethod
    def from_config(cls, config: AppConfig) -> "MySQLUploadStore":
        return cls(MySQLClient(
            host=config.mysql.host,
            port=config.mysql.port,
            user=config.mysql.user,
            password=config.mysql.password,
            database=config.mysql.database
        ))

    def connect(self) -> None:
        self.client.connect()
        self.client.ensure_tables(self.SCHEMA)

    def close(self) -> None:
        self.client.disconnect()

    def create_upload(self, original_filename: str, table_name: str, file_size: int) -> Upload:
        upload_id = self.client.execute(
            "INSERT INTO file_uploads (original_filename, table_name, file_size) VALUES (%s, %s, %s)",
            (original_filename, table_name, file_size)
        )
        return self._require_upload(upload_id)

    def get_upload(self, upload_id: int) -> Optional[Upload]:
        row = self.client.fetch_one("SELECT * FROM file_uploads WHERE id = %s", (upload_id,))
        return Upload.from_row(row) if row else None

    def _require_upload(self, upload_id: int) -> Upload:
        upload = self.get_upload(upload_id)
        if upload is None:
            raise UploadNotFoundError(f"Upload {upload_id} not found")
        return upload

    def list_uploads(self, limit: Optional[int] = 50) -> List[Upload]:
        query = "SELECT * FROM file_uploads ORDER BY created_at DESC, id DESC"
        if limit is None:
            rows = self.client.fetch_all(query)
        else:
            rows = self.client.fetch_all(f"{query} LIMIT %s", (limit,))
        return [Upload.from_row(row) for row in rows]

    def update_upload_status(
        self,
        upload_id: int,
        status: UploadStatus,
        error_message: Optional[str] = None
    ) -> None:
        assignments = ["upload_status = %s"]
        params: List[Any] = [status.value]
        if status == UploadStatus.COMPLETED:
            assignments.append("completed_at = NOW()")
        if error_message:
            assignments.append("error_message = %s")
            params.append(error_message)
        params.append(upload_id)
        self.client.execute(
            f"UPDATE file_uploads SET {', '.join(assignments)} WHERE id = %s",
            tuple(params)
        )

    def update_upload_stats(self, upload_id: int, total_rows: int, total_columns: int) -> None:
        self.client.execute(
            "UPDATE file_uploads SET total_rows = %s, total_columns = %s WHERE id = %s",
            (total_rows, total_columns, upload_id)
        )

    def update_upload_table_name(self, upload_id: int, table_name: str) -> None:
        self.client.execute(
            "UPDATE file_uploads SET table_name = %s WHERE id = %s",
            (table_name, upload_id)
        )

    def create_column(
        self,
        upload_id: int,
        table_name: str,
        column_name: str,
        column_type: str,
        column_position: int
    ) -> ColumnDefinition:
        column_id = self.client.execute(
            "INSERT INTO table_columns (upload_id, table_name, column_name, column_type, column_position) "
            "VALUES (%s, %s, %s, %s, %s)",
            (upload_id, table_name, column_name, column_type, column_position)
        )
        return ColumnDefinition(
            id=column_id,
            upload_id=upload_id,
            table_name=table_name,
            column_name=column_name,
            column_type=column_type,
            column_position=column_position,
        )

    def get_columns(self, upload_id: int) -> List[ColumnDefinition]:
        rows = self.client.fetch_all(
            "SELECT * FROM table_columns WHERE upload_id = %s ORDER BY column_position",
            (upload_id,)
        )
        return [ColumnDefinition.from_row(row) for row in rows]

    def create_row(
        self,
        upload_id: int,
        table_name: str,
        row_index: int,
        row_data: Dict[str, str]
    ) -> GenericRow:
        row = GenericRow(
            id=0,
            upload_id=upload_id,
            table_name=table_name,
            row_index=row_index,
            row_data=dict(row_data),
        )
        row.id = self.client.execute(
            "INSERT INTO csv_data (upload_id, table_name, row_data, row_index) VALUES (%s, %s, %s, %s)",
            (upload_id, table_name, row.serialized_row_data(), row_index)
        )
        return row

    def get_rows(self, upload_id: int, limit: int = 100) -> List[GenericRow]:
        rows = self.client.fetch_all(
            "SELECT * FROM csv_data WHERE upload_id = %s ORDER BY row_index LIMIT %s",
            (upload_id, limit)
        )
        return [GenericRow.from_row(row) for row in rows]

    def get_rows_by_table(self, table_name: str, limit: int = 100) -> List[GenericRow]:
        rows = self.client.fetch_all(
            "SELECT * FROM csv_data WHERE table_name = %s ORDER BY upload_id, row_index LIMIT %s",
            (table_name, limit)
        )
        return [GenericRow.from_row(row) for row in rows]

    def create_somatometria_record(self, upload_id: int, values: Dict[str, Any]) -> SomatometriaRecord:
        field_values = _somatometria_values(values)
        columns = ["upload_id"] + list(field_values)
        placeholders = ", ".join(["%s"] * len(columns))
        record_id = self.client.execute(
            f"INSERT INTO somatometria ({', '.join(columns)}) VALUES ({placeholders})",
            (upload_id, *field_values.values())
        )
        return SomatometriaRecord(id=record_id, upload_id=upload_id, **field_values)

    def list_somatometria(self, limit: int = 100) -> List[SomatometriaRecord]:
        rows = self.client.fetch_all(
            "SELECT * FROM somatometria ORDER BY created_at DESC, id DESC LIMIT %s",
            (limit,)
        )
        return [SomatometriaRecord.from_row(row) for row in rows]

    def count_somatometria(self) -> int:
        row = self.client.fetch_one("SELECT COUNT(*) AS count FROM somatometria")
        return int(row["count"]) if row else 0

    def clear_all(self) -> None:
        # Child tables first; TRUNCATE resets AUTO_INCREMENT
        for table in ("somatometria", "csv_data", "table_columns", "file_uploads"):
            self.client.execute(f"TRUNCATE TABLE {table}")
        logger.info("Cleared all upload tables")


def create_store(config: AppConfig) -> UploadStore:
    """
    Build the store selected by config.store_backend.

    Args:
        config: Application configuration

    Returns:
        An unconnected UploadStore; call connect() before use
    """
    if config.store_backend == "memory":
        return InMemoryUploadStore()
    return MySQLUploadStore.from_config(config)
