import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from csv_ingest.logger import get_logger

logger = get_logger(__name__)


# ==============================================
# UploadFileStaging
# ==============================================
#
# PURPOSE:
#   Hold an uploaded CSV on disk for exactly as long as the
#   ingestion pipeline needs it.
#
# WHY THIS CLASS EXISTS:
#   The uploaded file is a scoped resource: it is written when the
#   request arrives and must be removed after the pipeline finishes,
#   whether it succeeded or failed.
#
# CLASS: UploadFileStaging
# ------------------------
#   Stateful: holds a reference to the staging directory.
#
#   Constructor:
#   ------------
#   - __init__(storage_dir: str = "uploads/")
#       Create staging directory if it doesn't exist.
#
class UploadFileStaging:
    """
    Writes incoming uploads to a staging directory and removes them.

    Files are named "<uuid>-<original filename>" so concurrent uploads
    of the same file never collide.
    """

    def __init__(self, storage_dir: str = "uploads/"):
        """
        Initialize the staging area.

        Args:
            storage_dir: Directory where uploads are staged
        """
        self.storage_dir = Path(storage_dir)

        # Create directory if it doesn't exist
        self.storage_dir.mkdir(parents=True, exist_ok=True)

#   Methods:
#   --------
#   - save(content: bytes, original_filename: str) -> Path
#       Write the upload to a new file and return its path.
#
#   - remove(path: Path) -> None
#       Delete a staged file. Missing files are ignored.
#
#   - staged(content, original_filename)  (context manager)
#       save() on entry, remove() on every exit path.
#
    def save(self, content: bytes, original_filename: str) -> Path:
        """
        Write an upload to the staging directory.

        Args:
            content: Raw file bytes
            original_filename: Name the client sent

        Returns:
            Path of the staged file
        """
        safe_name = Path(original_filename or "upload.csv").name
        path = self.storage_dir / f"{uuid.uuid4().hex}-{safe_name}"
        path.write_bytes(content)
        logger.debug("Staged %s (%d bytes) at %s", safe_name, len(content), path)
        return path

    def remove(self, path: Path) -> None:
        """
        Delete a staged file.

        Args:
            path: Path returned by save()
        """
        path = Path(path)
        if path.exists():
            path.unlink()
            logger.debug("Removed staged file %s", path)

    @contextmanager
    def staged(self, content: bytes, original_filename: str) -> Iterator[Path]:
        path = self.save(content, original_filename)
        try:
            yield path
        finally:
            self.remove(path)
