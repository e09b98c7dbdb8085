"""Data source interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class DataSource(ABC):
    """Returns raw nested records for a resource, or None when unavailable."""

    @abstractmethod
    async def fetch(self, resource_id: str) -> Optional[Any]:
        """Fetch a single record, a list of records, or None."""
        pass

    async def close(self):
        pass


def extract_records(payload: Any) -> list[dict]:
    """Normalize a response into a list of records.

    Accepts a list of records, a single record, or a paged wrapper with an
    ``items`` list.
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        items = payload.get("items")
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
        return [payload] if payload else []
    return []
