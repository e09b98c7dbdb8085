"""In-memory tabular sink."""

import logging
from typing import Any

from .base import TabularSink

logger = logging.getLogger(__name__)


class MemorySink(TabularSink):
    """Keeps tables in process memory; used for dry runs."""

    def __init__(self):
        self.headers: dict[str, list[str]] = {}
        self.rows: dict[str, list[list[Any]]] = {}

    def declare_columns(self, resource_id: str, header_names: list[str]) -> None:
        self.headers[resource_id] = list(header_names)

    def replace_rows(
        self, resource_id: str, rows: list[list[Any]], header_names: list[str]
    ) -> None:
        self.headers[resource_id] = list(header_names)
        self.rows[resource_id] = [list(row) for row in rows]
        logger.debug(f"MemorySink: stored {len(rows)} rows for '{resource_id}'")

    def read_all_rows(self, resource_id: str) -> list[list[Any]]:
        return [list(row) for row in self.rows.get(resource_id, [])]
