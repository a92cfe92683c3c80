"""
File Upload Utility - Validate resume metadata reported by the client.

The browser uploads bytes straight to object storage, so the API only
sees what the client claims about the file. These checks run when the
upload is confirmed.

Supported formats:
- PDF (.pdf)
- Word (.doc, .docx)

Max file size: 10MB
"""

import re
from typing import Optional

from internmatch.core.config import get_settings
from internmatch.core.errors import InvalidMetadata

settings = get_settings()

MAX_FILE_SIZE_BYTES = settings.max_resume_size_bytes
MAX_FILE_SIZE_MB = MAX_FILE_SIZE_BYTES // (1024 * 1024)
MAX_FILE_NAME_LENGTH = 255

ALLOWED_MIME_TYPES = {
    "application/pdf": "PDF",
    "application/msword": "Word 97-2003 Document",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "Word Document",
}

FILE_EXTENSIONS = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_file_name(file_name: Optional[str]) -> str:
    """Replace anything outside [A-Za-z0-9._-] and cap the length."""
    return _UNSAFE_CHARS.sub("_", file_name or "")[:MAX_FILE_NAME_LENGTH]


def validate_resume_metadata(file_name: Optional[str], file_size: int, mime_type: str) -> str:
    """
    Check client-reported resume metadata.

    Returns:
        The sanitized file name

    Raises:
        InvalidMetadata when the type, size or name is unacceptable
    """
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidMetadata("Invalid file type. Allowed: PDF, DOC, DOCX")

    if file_size is None or file_size <= 0:
        raise InvalidMetadata("File size must be positive")

    if file_size > MAX_FILE_SIZE_BYTES:
        raise InvalidMetadata(f"File too large (max {MAX_FILE_SIZE_MB} MB)")

    sanitized = sanitize_file_name(file_name)
    if not sanitized.strip("._"):
        raise InvalidMetadata("Invalid file name")

    return sanitized


def get_supported_formats() -> dict:
    """Get info about supported file formats."""
    return {
        "supported_formats": [
            {"mime_type": mime, "name": name} for mime, name in ALLOWED_MIME_TYPES.items()
        ],
        "max_size_mb": MAX_FILE_SIZE_MB
    }


def extension_for(mime_type: Optional[str]) -> str:
    """Storage file extension for a declared type; PDF when none is declared."""
    if mime_type is None:
        return "pdf"
    if mime_type not in FILE_EXTENSIONS:
        raise InvalidMetadata("Invalid file type. Allowed: PDF, DOC, DOCX")
    return FILE_EXTENSIONS[mime_type]
