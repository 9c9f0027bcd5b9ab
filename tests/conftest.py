# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests. Every test runs against the
# in-memory upload store and a temporary staging directory, so
# no MySQL server is needed.
#
# FIXTURES:
# ---------
# - store            → fresh InMemoryUploadStore
# - staging          → UploadFileStaging under tmp_path
# - pipeline         → IngestPipeline wired to store + staging
# - app_config       → AppConfig with the memory backend
# - make_csv         → build CSV bytes from headers + rows
# - somatometria_csv → a small specialized-schema file
#
# ==============================================

import csv
from io import StringIO

import pytest

from csv_ingest.config import AppConfig, MySQLConfig, ServerConfig, UploadConfig
from csv_ingest.ingest_pipeline import IngestPipeline
from csv_ingest.persistence.upload_files import UploadFileStaging
from csv_ingest.storage.upload_store import InMemoryUploadStore


SOMATOMETRIA_HEADERS = [
    "No. Control", "CURP", "Nombre", "Apellido Paterno", "Apellido Materno",
    "Grupo", "Edad", "Sexo", "Peso (kg)", "Estatura", "Temperatura", "IMC",
]


def build_csv(headers, rows) -> bytes:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


@pytest.fixture
def store():
    """Provide an empty in-memory upload store."""
    return InMemoryUploadStore()


@pytest.fixture
def staging(tmp_path):
    """Provide a staging area in a temporary directory."""
    return UploadFileStaging(str(tmp_path / "uploads"))


@pytest.fixture
def pipeline(store, staging):
    """Create a pipeline backed by the in-memory store."""
    return IngestPipeline(store, staging=staging)


@pytest.fixture
def app_config(tmp_path):
    """Application config that never touches MySQL."""
    return AppConfig(
        mysql=MySQLConfig(),
        upload=UploadConfig(upload_dir=str(tmp_path / "api_uploads"), max_upload_bytes=1024),
        server=ServerConfig(),
        store_backend="memory",
    )


@pytest.fixture
def make_csv():
    """Return a builder: make_csv(headers, rows) -> bytes."""
    return build_csv


@pytest.fixture
def somatometria_csv():
    """Two clinic rows with Spanish headers and comma decimals."""
    return build_csv(SOMATOMETRIA_HEADERS, [
        ["20230001", "GOMA050101HDFRRN09", "Ana", "Gómez", "Ruiz", "3A", "17", "F",
         "72,5", "1.65", "36,6", "26.6"],
        ["20230002", "PELJ050202HDFRRN01", "Juan", "Pérez", "López", "3A", "", "M",
         "n/a", "1.72", "", "22.1"],
    ])
