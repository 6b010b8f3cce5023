"""
File type detection from leading magic bytes.

The declared content type and file name of an upload are never trusted;
only these signatures are accepted:

- JPEG: ``FF D8 FF``
- PNG:  ``89 50 4E 47``
- PDF:  ``25 50 44 46`` (``%PDF``)
- WEBP: ``RIFF`` at bytes 0-3 and ``WEBP`` at bytes 8-11
"""

from dataclasses import dataclass
from typing import Optional

JPEG_PREFIX = b"\xff\xd8\xff"
PNG_HEADER = b"\x89PNG"
PDF_HEADER = b"%PDF"
RIFF_HEADER = b"RIFF"
WEBP_FOURCC = b"WEBP"

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
    "image/webp": ".webp",
}


@dataclass(frozen=True)
class SniffResult:
    is_valid: bool
    mime_type: Optional[str] = None

    @property
    def extension(self) -> Optional[str]:
        return EXTENSIONS.get(self.mime_type) if self.mime_type else None


INVALID = SniffResult(is_valid=False)


def sniff(data: bytes) -> SniffResult:
    """Detect the file type of ``data`` from its signature."""
    if not data or len(data) < 4:
        return INVALID

    header = bytes(data[:4])
    if header.startswith(JPEG_PREFIX):
        return SniffResult(True, "image/jpeg")
    if header == PNG_HEADER:
        return SniffResult(True, "image/png")
    if header == PDF_HEADER:
        return SniffResult(True, "application/pdf")
    if header == RIFF_HEADER and bytes(data[8:12]) == WEBP_FOURCC:
        return SniffResult(True, "image/webp")
    return INVALID
