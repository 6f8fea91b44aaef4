# Database module - SQLite collections, change feed and blob storage
from .models import init_db, get_connection
from .operations import DatabaseOperations
from .changes import ChangeFeed, ChangeEvent, Subscription
from .blob_store import LocalBlobStore
