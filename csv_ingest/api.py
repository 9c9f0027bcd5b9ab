# csv_ingest/api.py

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, FastAPI, File, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from csv_ingest import __version__
from csv_ingest.config import AppConfig, UploadConfig, get_config
from csv_ingest.errors import CsvParseError, EmptyFileError, UnsupportedFileError
from csv_ingest.ingest_pipeline import IngestPipeline
from csv_ingest.logger import get_logger
from csv_ingest.persistence.upload_files import UploadFileStaging
from csv_ingest.statistics import UploadStatistics
from csv_ingest.storage.upload_store import UploadStore, create_store

logger = get_logger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}

router = APIRouter(prefix="/api", tags=["Uploads"])


def validate_upload(
    filename: Optional[str],
    content_type: Optional[str],
    size: int,
    upload_config: UploadConfig
) -> None:
    """
    Reject uploads that are not CSV or exceed the size limit.

    Raises:
        UnsupportedFileError: 400 for the wrong type, 413 for too large
    """
    extension = Path(filename or "").suffix.lower()
    if content_type not in CSV_CONTENT_TYPES and extension not in upload_config.allowed_extensions:
        raise UnsupportedFileError("Only CSV files are allowed", status_code=400)
    if size > upload_config.max_upload_bytes:
        raise UnsupportedFileError(
            f"File exceeds the {upload_config.max_upload_bytes} byte limit",
            status_code=413
        )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _store(request: Request) -> UploadStore:
    return request.app.state.store


@router.post("/upload")
def upload_csv(request: Request, csvFile: Optional[UploadFile] = File(None)):
    """
    Accepts one CSV file, runs it through the ingestion pipeline and
    reports how many rows and columns were stored.
    """
    if csvFile is None:
        return _error(400, "No file uploaded")

    config: AppConfig = request.app.state.config
    limit = config.upload.max_upload_bytes
    content = csvFile.file.read(limit + 1)

    try:
        validate_upload(csvFile.filename, csvFile.content_type, len(content), config.upload)
    except UnsupportedFileError as e:
        return _error(e.status_code, str(e))

    pipeline: IngestPipeline = request.app.state.pipeline
    try:
        result = pipeline.ingest_bytes(content, csvFile.filename or "upload.csv")
    except (EmptyFileError, CsvParseError) as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Upload error")
        return _error(500, str(e) or "Upload failed")

    return {
        "success": True,
        "uploadId": result.upload_id,
        "tableName": result.table_name,
        "mode": result.mode.value,
        "rowsProcessed": result.rows_processed,
        "columnsCreated": result.columns_created,
        "columns": result.columns,
    }


@router.get("/uploads")
def list_uploads(request: Request, limit: int = Query(50, ge=1)):
    return [upload.to_dict() for upload in _store(request).list_uploads(limit=limit)]


@router.get("/uploads/{upload_id}")
def get_upload(request: Request, upload_id: int):
    store = _store(request)
    upload = store.get_upload(upload_id)
    if upload is None:
        return _error(404, "Upload not found")

    return {
        "upload": upload.to_dict(),
        "columns": [column.to_dict() for column in store.get_columns(upload_id)],
        "data": [row.to_dict() for row in store.get_rows(upload_id, limit=100)],
    }


@router.get("/tables/{table_name}/data")
def get_table_data(request: Request, table_name: str, limit: int = Query(100, ge=1)):
    return [row.to_dict() for row in _store(request).get_rows_by_table(table_name, limit=limit)]


@router.get("/somatometria")
def list_somatometria(request: Request, limit: int = Query(100, ge=1)):
    return [record.to_dict() for record in _store(request).list_somatometria(limit=limit)]


@router.get("/stats")
def get_stats(request: Request):
    return UploadStatistics.collect(_store(request)).to_dict()


@router.delete("/clear-database")
def clear_database(request: Request):
    _store(request).clear_all()
    return {
        "success": True,
        "message": "Database cleared",
        "cleared": {
            "somatometria": True,
            "csv_data": True,
            "table_columns": True,
            "file_uploads": True,
        },
    }


def create_app(config: Optional[AppConfig] = None, store: Optional[UploadStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application configuration. If None, loads from environment.
        store: Upload store to use. If None, built from config and
               connected when the app starts.
    """
    config = config or get_config()
    store = store or create_store(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.connect()
        logger.info("Upload store ready (%s)", config.store_backend)
        try:
            yield
        finally:
            store.close()

    app = FastAPI(title="CSV Ingest API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.store = store
    app.state.pipeline = IngestPipeline(store, staging=UploadFileStaging(config.upload.upload_dir))

    app.include_router(router)

    @app.get("/")
    def root():
        return {"message": "CSV ingest API running."}

    return app
