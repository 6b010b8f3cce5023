"""
Factory for creating the uploads module.
"""
from pathlib import Path
from typing import Any, Dict

from truthlens.user_management.services import UserService
from .services import UploadService
from .routes import create_upload_routes


def create_uploads_module(upload_dir: Path, user_service: UserService, max_upload_size_mb: int = 5) -> Dict[str, Any]:
    """Create and configure upload components."""
    service = UploadService(upload_dir, max_upload_size_mb=max_upload_size_mb)
    blueprint = create_upload_routes(service, user_service)

    return {
        "service": service,
        "blueprint": blueprint,
    }
