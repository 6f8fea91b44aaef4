"""Upload and removal of group learning materials (blob + metadata)."""

import logging
import re

from ..database.blob_store import LocalBlobStore
from ..database.operations import DatabaseOperations
from ..utils.error_handlers import ValidationError
from ..utils.file_validation import RESOURCE_CATEGORIES, validate_file
from ..utils.time_utils import now_ms

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def storage_path_for(group_id: int, unit_id: str, file_name: str, timestamp: int) -> str:
    """Blob path: groups/{group}/materials/{unit}/{ms}_{name}."""
    safe_name = _UNSAFE_NAME_CHARS.sub("_", file_name).strip("_") or "file"
    return f"groups/{group_id}/materials/{unit_id or 'general'}/{timestamp}_{safe_name}"


def upload_resource(
    db: DatabaseOperations,
    blobs: LocalBlobStore,
    user_id: str,
    group_id: int,
    file_name: str,
    mime_type: str,
    data: bytes,
    title: str,
    uploaded_by_name: str = "Unknown",
    unit_id: str = "",
    unit_name: str = "General",
    description: str = "",
    category: str = "other",
) -> dict:
    """
    Store a file for a group and record its metadata. Rep only.

    The blob is written first; if saving the metadata fails the blob is
    removed again before the error propagates.
    """
    db.require_rep(group_id, user_id)

    error = validate_file(file_name, mime_type, len(data))
    if error:
        raise ValidationError(error)
    if not title or not title.strip():
        raise ValidationError("Resource title is required")
    if category not in RESOURCE_CATEGORIES:
        raise ValidationError(f"Unknown category: {category}")

    path = storage_path_for(group_id, unit_id, file_name, now_ms())
    file_url = blobs.save(path, data)

    try:
        resource = db.add_resource(
            group_id,
            title=title.strip(),
            file_url=file_url,
            storage_path=path,
            file_type=mime_type,
            file_name=file_name,
            file_size=len(data),
            uploaded_by=user_id,
            uploaded_by_name=uploaded_by_name,
            unit_id=unit_id,
            unit_name=unit_name,
            description=description,
            category=category,
        )
    except Exception:
        logger.error(f"Metadata save failed, removing orphaned blob {path}")
        blobs.delete(path)
        raise

    logger.info(f"Resource {resource['id']} uploaded to group {group_id} by {user_id}")
    return resource


def delete_resource(
    db: DatabaseOperations,
    blobs: LocalBlobStore,
    user_id: str,
    group_id: int,
    resource_id: int,
) -> None:
    """Remove a resource's blob, then its metadata. Rep only."""
    db.require_rep(group_id, user_id)
    resource = db.get_resource(group_id, resource_id)

    # A missing blob is logged by the store and does not block metadata removal
    blobs.delete(resource["storagePath"])
    db.delete_resource(group_id, resource_id)
    logger.info(f"Resource {resource_id} deleted from group {group_id}")
