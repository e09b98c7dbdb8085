"""Per-resource synchronization between the data source and the sink."""

from .repository import ResourceRepository, SyncResult
from .service import SyncService

__all__ = ["ResourceRepository", "SyncResult", "SyncService"]
