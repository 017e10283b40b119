"""Object storage interface for uploaded files."""

from pathlib import PurePosixPath
from typing import Protocol
from uuid import UUID

_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/msword",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.ms-excel",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.ms-powerpoint",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


class ObjectStore(Protocol):
    """Interface for downloading user uploads."""

    def download(self, path: str, owner_id: UUID) -> bytes:
        """Return the bytes stored at path when owned by owner_id."""

    def get_mime_type(self, path: str) -> str:
        """Return the MIME type for a stored path."""


def guess_mime_type(path: str) -> str:
    """Map a file extension to a MIME type."""
    suffix = PurePosixPath(path).suffix.lower()
    return _MIME_TYPES.get(suffix, "application/octet-stream")


def source_name(path: str) -> str:
    """Return the display name of a storage path."""
    return PurePosixPath(path).name or path
