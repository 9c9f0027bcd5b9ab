# ==============================================
# STORAGE (MySQL)
# ==============================================
#
# This package holds the upload record store: the models it
# persists, the MySQL connection, and the store implementations.
#
# Modules:
# --------
# - models.py        → Upload, ColumnDefinition, GenericRow, SomatometriaRecord
# - mysql_client.py  → MySQL connection and raw SQL operations
# - upload_store.py  → UploadStore interface, MySQL and in-memory stores
#
# ==============================================

from .models import (
    ColumnDefinition,
    GenericRow,
    SomatometriaRecord,
    Upload,
    UploadStatus,
)
from .mysql_client import MySQLClient
from .upload_store import (
    InMemoryUploadStore,
    MySQLUploadStore,
    UploadStore,
    create_store,
)

__all__ = [
    "ColumnDefinition",
    "GenericRow",
    "SomatometriaRecord",
    "Upload",
    "UploadStatus",
    "MySQLClient",
    "InMemoryUploadStore",
    "MySQLUploadStore",
    "UploadStore",
    "create_store",
]
