from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from csv_ingest.storage.models import Upload, UploadStatus
from csv_ingest.storage.upload_store import UploadStore

RECENT_UPLOADS = 5


@dataclass
class UploadStatistics:
    """
    Aggregate counters over the upload history, recomputed on every call.
    """
    total_files: int = 0
    total_records: int = 0
    completed_uploads: int = 0
    failed_uploads: int = 0
    somatometria_records: int = 0
    recent_uploads: List[Upload] = field(default_factory=list)

    @classmethod
    def collect(cls, store: UploadStore, scan_limit: Optional[int] = None) -> "UploadStatistics":
        """
        Scan the stored uploads and build the counters.

        Args:
            store: Upload record store
            scan_limit: How many of the newest uploads to scan (None = all)

        Returns:
            UploadStatistics snapshot
        """
        uploads = store.list_uploads(limit=scan_limit)
        return cls(
            total_files=len(uploads),
            total_records=sum(u.total_rows or 0 for u in uploads),
            completed_uploads=sum(1 for u in uploads if u.status == UploadStatus.COMPLETED),
            failed_uploads=sum(1 for u in uploads if u.status == UploadStatus.ERROR),
            somatometria_records=store.count_somatometria(),
            recent_uploads=uploads[:RECENT_UPLOADS],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "totalRecords": self.total_records,
            "completedUploads": self.completed_uploads,
            "failedUploads": self.failed_uploads,
            "somatometriaRecords": self.somatometria_records,
            "recentUploads": [u.to_dict() for u in self.recent_uploads],
        }
