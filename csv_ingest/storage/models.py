# ==============================================
# Storage Models (Data Classes)
# ==============================================
#
# PURPOSE:
#   Records persisted by the upload store.
#
# ENUMS:
# ------
# - UploadStatus(Enum): PENDING, PROCESSING, COMPLETED, ERROR
#
# CLASSES:
# --------
# - Upload              → one submitted CSV file and its lifecycle
# - ColumnDefinition    → one inferred column of a generic upload
# - GenericRow          → one row of a generic upload (JSON row blob)
# - SomatometriaRecord  → one row of a specialized upload
#
#   Every class has:
#   - to_dict() -> dict            → JSON-serializable form for the API
#   - from_row(row: dict) (classmethod) → build from a DB row
#
# ==============================================

import json
from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from csv_ingest.analysis.field_mapper import SOMATOMETRIA_FIELDS


class UploadStatus(Enum):
    """Lifecycle of an upload: pending → processing → completed | error."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Upload:
    id: int
    original_filename: str
    table_name: str
    file_size: int
    status: UploadStatus = UploadStatus.PENDING
    error_message: Optional[str] = None
    total_rows: int = 0
    total_columns: int = 0
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "original_filename": self.original_filename,
            "table_name": self.table_name,
            "file_size": self.file_size,
            "upload_status": self.status.value,
            "error_message": self.error_message,
            "total_rows": self.total_rows,
            "total_columns": self.total_columns,
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Upload":
        return cls(
            id=row["id"],
            original_filename=row["original_filename"],
            table_name=row["table_name"],
            file_size=row["file_size"],
            status=UploadStatus(row.get("upload_status", "pending")),
            error_message=row.get("error_message"),
            total_rows=row.get("total_rows") or 0,
            total_columns=row.get("total_columns") or 0,
            created_at=row.get("created_at"),
            completed_at=row.get("completed_at"),
        )


@dataclass
class ColumnDefinition:
    id: int
    upload_id: int
    table_name: str
    column_name: str
    column_type: str
    column_position: int
    is_nullable: bool = True
    default_value: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "upload_id": self.upload_id,
            "table_name": self.table_name,
            "column_name": self.column_name,
            "column_type": self.column_type,
            "column_position": self.column_position,
            "is_nullable": self.is_nullable,
            "default_value": self.default_value,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ColumnDefinition":
        return cls(
            id=row["id"],
            upload_id=row["upload_id"],
            table_name=row["table_name"],
            column_name=row["column_name"],
            column_type=row["column_type"],
            column_position=row["column_position"],
            is_nullable=bool(row.get("is_nullable", True)),
            default_value=row.get("default_value"),
            created_at=row.get("created_at"),
        )


@dataclass
class GenericRow:
    id: int
    upload_id: int
    table_name: str
    row_index: int
    row_data: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def serialized_row_data(self) -> str:
        return json.dumps(self.row_data, ensure_ascii=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "upload_id": self.upload_id,
            "table_name": self.table_name,
            "row_index": self.row_index,
            "row_data": dict(self.row_data),
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "GenericRow":
        row_data = row.get("row_data") or {}
        if isinstance(row_data, (str, bytes)):
            row_data = json.loads(row_data)
        return cls(
            id=row["id"],
            upload_id=row["upload_id"],
            table_name=row["table_name"],
            row_index=row["row_index"],
            row_data=row_data,
            created_at=row.get("created_at"),
        )


@dataclass
class SomatometriaRecord:
    """
    One row of a specialized upload. Every schema field is present;
    fields the file did not provide are None.
    """
    id: int
    upload_id: int
    no_control: Optional[str] = None
    curp: Optional[str] = None
    nombre: Optional[str] = None
    paterno: Optional[str] = None
    materno: Optional[str] = None
    grupo: Optional[str] = None
    edad: Optional[int] = None
    certificacion_medica: Optional[str] = None
    sexo: Optional[str] = None
    peso: Optional[float] = None
    perimetro: Optional[float] = None
    estatura: Optional[float] = None
    tension: Optional[str] = None
    tension_a: Optional[int] = None
    presion_a: Optional[int] = None
    tension_d: Optional[int] = None
    frecuencia: Optional[int] = None
    temperatura: Optional[float] = None
    saturacion: Optional[float] = None
    glucometria: Optional[float] = None
    imc: Optional[float] = None
    clasificacion: Optional[str] = None
    imp: Optional[str] = None
    created_at: Optional[datetime] = None

    def field_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in SOMATOMETRIA_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "upload_id": self.upload_id}
        data.update(self.field_values())
        data["created_at"] = _iso(self.created_at)
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SomatometriaRecord":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in row.items():
            if key not in known:
                continue
            # DECIMAL columns come back from MySQL as Decimal
            values[key] = float(value) if isinstance(value, Decimal) else value
        return cls(**values)
