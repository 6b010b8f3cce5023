"""
Uploads: file signature checks and storage of user files.
"""

from .file_signature import SniffResult, sniff
from .services import StoredUpload, UploadRejectedError, UploadService
from .factory import create_uploads_module

__all__ = [
    "SniffResult",
    "sniff",
    "StoredUpload",
    "UploadRejectedError",
    "UploadService",
    "create_uploads_module",
]
