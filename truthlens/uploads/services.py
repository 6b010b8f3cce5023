"""
Upload service: validates and stores user-supplied files on disk.
"""
import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from werkzeug.utils import secure_filename

from .file_signature import sniff

logger = logging.getLogger(__name__)

_DIR_NAME_RE = re.compile(r"^[0-9a-f]{64}$")


class UploadRejectedError(Exception):
    """An upload was refused because of its content."""


@dataclass
class StoredUpload:
    file_id: str
    url: str
    mime_type: str
    size: int

    def to_dict(self) -> dict:
        return {
            "file_id": self.file_id,
            "url": self.url,
            "mime_type": self.mime_type,
            "size": self.size,
        }


class UploadService:
    """Stores uploads under ``<upload_dir>/<user dir name>/<file_id><ext>``."""

    def __init__(self, upload_dir: Path, max_upload_size_mb: int = 5, url_prefix: str = "/api/uploads/files"):
        self.upload_dir = Path(upload_dir)
        self.max_upload_size = max_upload_size_mb * 1024 * 1024
        self.url_prefix = url_prefix.rstrip("/")
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def user_dir_name(user_id: str) -> str:
        """Directory name for a user's uploads: the hex SHA-256 of the user id."""
        return hashlib.sha256(user_id.encode("utf-8")).hexdigest()

    def save_upload(self, user_id: str, filename: Optional[str], data: bytes) -> StoredUpload:
        """
        Validate and persist an upload.

        The stored extension comes from the sniffed type, never from the
        client-supplied filename.

        Raises:
            UploadRejectedError: If the data is empty, too large, or of an unsupported type
        """
        if not user_id:
            raise UploadRejectedError("Invalid user id")
        if not data:
            raise UploadRejectedError("Empty file")
        if len(data) > self.max_upload_size:
            raise UploadRejectedError(
                f"File too large (max {self.max_upload_size // (1024 * 1024)} MB)"
            )

        result = sniff(data)
        if not result.is_valid:
            logger.warning(f"Rejected upload from {user_id} with unrecognized signature: {filename}")
            raise UploadRejectedError("Unsupported file type. Allowed: JPEG, PNG, WEBP, PDF")

        dir_name = self.user_dir_name(user_id)
        user_dir = self.upload_dir / dir_name
        user_dir.mkdir(parents=True, exist_ok=True)

        file_id = uuid.uuid4().hex
        stored_name = f"{file_id}{result.extension}"
        (user_dir / stored_name).write_bytes(data)

        logger.info(f"Stored upload {stored_name} ({result.mime_type}, {len(data)} bytes) for {user_id}")
        return StoredUpload(
            file_id=file_id,
            url=f"{self.url_prefix}/{dir_name}/{stored_name}",
            mime_type=result.mime_type,
            size=len(data),
        )

    def resolve_path(self, dir_name: str, stored_name: str) -> Optional[Path]:
        """Path of a stored upload given its URL segments, or None if it does not exist."""
        if not _DIR_NAME_RE.match(dir_name):
            return None
        safe_name = secure_filename(stored_name)
        if not safe_name or safe_name != stored_name:
            return None
        path = self.upload_dir / dir_name / safe_name
        return path if path.is_file() else None
