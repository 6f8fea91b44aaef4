"""Upload validation for course resources."""

import math
from pathlib import PurePath
from typing import Optional

MAX_FILE_SIZE = 25 * 1024 * 1024  # 25MB
MAX_FILE_SIZE_LABEL = "25MB"

ALLOWED_TYPES = {
    "documents": {
        "mime_types": [
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "application/vnd.ms-powerpoint",
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
            "text/plain",
        ],
        "extensions": [".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt"],
    },
    "images": {
        "mime_types": ["image/jpeg", "image/png", "image/gif", "image/webp"],
        "extensions": [".jpg", ".jpeg", ".png", ".gif", ".webp"],
    },
    "archives": {
        "mime_types": ["application/zip", "application/x-rar-compressed"],
        "extensions": [".zip", ".rar"],
    },
}

RESOURCE_CATEGORIES = {
    "lecture-notes": "Lecture Notes",
    "assignments": "Assignments",
    "past-papers": "Past Papers",
    "textbooks": "Textbooks",
    "reference": "Reference Materials",
    "other": "Other",
}


def get_allowed_mime_types() -> list[str]:
    """All MIME types accepted for upload."""
    return [mime for group in ALLOWED_TYPES.values() for mime in group["mime_types"]]


def get_allowed_extensions() -> list[str]:
    """All file extensions accepted for upload."""
    return [ext for group in ALLOWED_TYPES.values() for ext in group["extensions"]]


def validate_file(file_name: str, mime_type: str, size: int) -> Optional[str]:
    """
    Check an upload against size, MIME type and extension rules.

    Returns:
        None when the file is acceptable, otherwise the error message to show.
    """
    if size > MAX_FILE_SIZE:
        return f"File size exceeds {MAX_FILE_SIZE_LABEL}. Please choose a smaller file."

    if mime_type not in get_allowed_mime_types():
        return "File type not allowed. Accepted: PDF, Word, Excel, PowerPoint, images, and ZIP files."

    extension = PurePath(file_name or "").suffix.lower()
    if extension not in get_allowed_extensions():
        return "File extension does not match allowed formats."

    return None


def format_bytes(num_bytes: int) -> str:
    """Human readable size, e.g. 1536 -> '1.5 KB'."""
    if num_bytes <= 0:
        return "0 Bytes"
    k = 1024
    sizes = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(num_bytes) / math.log(k))), len(sizes) - 1)
    value = round(num_bytes / math.pow(k, i), 2)
    # "1.0 KB" -> "1 KB"
    return f"{value:g} {sizes[i]}"
