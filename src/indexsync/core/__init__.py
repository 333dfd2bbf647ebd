"""Core synchronization logic package."""

from .resolver import IndexResolver
from .sync_client import SyncClient
from .sync_engine import SyncEngine, SyncResult, ExportJob

__all__ = [
    "IndexResolver",
    "SyncClient",
    "SyncEngine",
    "SyncResult",
    "ExportJob"
]
