"""Shared dependencies for API routes (overridable in tests)."""

from functools import lru_cache

from ..config import config
from ..database.blob_store import LocalBlobStore
from ..database.changes import ChangeFeed
from ..database.operations import DatabaseOperations

FILES_URL_PREFIX = "/files"


@lru_cache
def get_change_feed() -> ChangeFeed:
    """Process-wide change feed."""
    return ChangeFeed()


@lru_cache
def get_db() -> DatabaseOperations:
    return DatabaseOperations(config.DATABASE_PATH, feed=get_change_feed())


@lru_cache
def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore(config.BLOB_STORAGE_DIR, base_url=FILES_URL_PREFIX)
