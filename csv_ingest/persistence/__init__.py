# ==============================================
# PERSISTENCE (uploaded files on disk)
# ==============================================
#
# This package handles the temporary on-disk copy of each
# uploaded CSV while the pipeline reads it.
#
# Modules:
# --------
# - upload_files.py  → Stage an upload, remove it on every exit path
#
# ==============================================

from .upload_files import UploadFileStaging

__all__ = ["UploadFileStaging"]
